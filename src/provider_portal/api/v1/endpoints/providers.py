"""
Provider Endpoints.

Provider record operations used by the onboarding flow:
- Create / read the provider record (earlier onboarding steps)
- Attach the uploaded headshot and gallery images
- Import the client reviews spreadsheet
"""
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, File, Path, UploadFile, status

from ....core.config import Settings, get_settings
from ....core.exceptions import BadRequestError
from ....core.responses import GenericResponse
from ....db.session import DbSession
from ....repositories.provider_repository import ProviderRepository
from ....repositories.review_repository import ReviewRepository
from ....schemas.provider import (
    ProviderCreate,
    ProviderImagesSaved,
    ProviderImagesUpdate,
    ProviderResponse,
)
from ....schemas.reviews import ReviewImportResult
from ....services.review_import_service import ReviewImportService
from ....services.upload_storage_service import UploadStorage, get_upload_storage, is_valid_key

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/providers")

# Ids are taken as opaque strings; one that names no record is a 404.
ProviderId = Annotated[str, Path(min_length=1, max_length=64, description="Provider ID")]


@router.post(
    "",
    response_model=GenericResponse[ProviderResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a provider record",
)
async def create_provider(
    payload: ProviderCreate,
    db: DbSession,
) -> GenericResponse[ProviderResponse]:
    provider = await ProviderRepository(db).create(payload)
    return GenericResponse(
        message="Provider created successfully",
        data=ProviderResponse.model_validate(provider),
    )


@router.get(
    "/{provider_id}",
    response_model=GenericResponse[ProviderResponse],
    summary="Get a provider record",
)
async def get_provider(
    provider_id: ProviderId,
    db: DbSession,
) -> GenericResponse[ProviderResponse]:
    provider = await ProviderRepository(db).get_or_raise(provider_id)
    return GenericResponse(
        message="Provider retrieved successfully",
        data=ProviderResponse.model_validate(provider),
    )


@router.put(
    "/{provider_id}/images",
    response_model=GenericResponse[ProviderImagesSaved],
    summary="Save headshot and gallery images",
    description=(
        "Resolves the storage keys returned by /uploads/signature into "
        "retrievable URLs and stores them on the provider record."
    ),
)
async def save_provider_images(
    provider_id: ProviderId,
    payload: ProviderImagesUpdate,
    db: DbSession,
    storage: Annotated[UploadStorage, Depends(get_upload_storage)],
) -> GenericResponse[ProviderImagesSaved]:
    for field_name, key in (("headshot_key", payload.headshot_key), ("gallery_key", payload.gallery_key)):
        if not is_valid_key(key):
            raise BadRequestError(
                message=f"Invalid storage key for {field_name}",
                error_code="INVALID_STORAGE_KEY",
                details={"field": field_name, "key": key},
            )

    provider = await ProviderRepository(db).update_images(
        provider_id,
        headshot_url=storage.object_url(payload.headshot_key),
        gallery_url=storage.object_url(payload.gallery_key),
    )
    return GenericResponse(
        message="Images saved successfully",
        data=ProviderImagesSaved(provider=ProviderResponse.model_validate(provider)),
    )


@router.post(
    "/{provider_id}/reviews/excel",
    response_model=GenericResponse[ReviewImportResult],
    summary="Import client reviews from a spreadsheet",
    description=(
        "Accepts .xls / .xlsx with columns Client Name, Review and optionally "
        "Satisfaction Rating. Rows missing a name or review are skipped and "
        "reported in `warnings`."
    ),
    responses={
        400: {"description": "Wrong file type, unreadable file or no usable rows"},
        404: {"description": "Provider not found"},
        413: {"description": "File or row count too large"},
    },
)
async def import_reviews(
    provider_id: ProviderId,
    file: Annotated[UploadFile, File(description="Client reviews spreadsheet (.xls/.xlsx)")],
    db: DbSession,
    settings: Annotated[Settings, Depends(get_settings)],
) -> GenericResponse[ReviewImportResult]:
    provider = await ProviderRepository(db).get_or_raise(provider_id)

    content = await file.read()
    service = ReviewImportService(
        ReviewRepository(db),
        allowed_types=settings.allowed_spreadsheet_types_list,
        max_rows=settings.REVIEWS_MAX_ROWS,
        max_file_size=settings.max_file_size_bytes,
    )
    result = await service.import_reviews(
        provider.id,
        content=content,
        file_name=file.filename or "reviews.xlsx",
        content_type=file.content_type or "",
    )
    return GenericResponse(
        message=f"{result.reviews_added} reviews imported",
        data=result,
    )
