"""Upload authorization endpoint.

Hands the portal client a short-lived URL it can PUT one image to, plus the
storage key to send back when saving the provider's images.
"""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from ....core.config import Settings, get_settings
from ....core.exceptions import ExternalServiceError
from ....core.responses import GenericResponse
from ....schemas.uploads import UploadSignatureRequest, UploadSignatureResponse
from ....services.upload_storage_service import (
    UploadStorage,
    UploadStorageError,
    ensure_image_content_type,
    get_upload_storage,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads")


@router.post(
    "/signature",
    response_model=GenericResponse[UploadSignatureResponse],
    status_code=status.HTTP_200_OK,
    summary="Get an upload URL",
    description="Returns a presigned URL accepting a single PUT of a JPG/PNG image, and its storage key.",
)
async def create_upload_signature(
    payload: UploadSignatureRequest,
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[UploadStorage, Depends(get_upload_storage)],
) -> GenericResponse[UploadSignatureResponse]:
    ensure_image_content_type(payload.file_name, payload.content_type, settings.allowed_image_types_list)

    try:
        authorization = await storage.create_upload_authorization(payload.file_name, payload.content_type)
    except UploadStorageError as e:
        raise ExternalServiceError("storage", str(e)) from e

    logger.info(f"Upload signature issued: file={payload.file_name}, key={authorization.key}")

    return GenericResponse(
        message="Upload URL created",
        data=UploadSignatureResponse(
            presigned_url=authorization.presigned_url,
            key=authorization.key,
            expires_in=authorization.expires_in,
        ),
    )
