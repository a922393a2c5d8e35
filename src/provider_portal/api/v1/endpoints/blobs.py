"""
Blob Storage Endpoints.

Local stand-in for the S3 presigned-URL flow:
- PUT a blob to the signed URL issued by /uploads/signature
- GET a stored blob by key (the URL saved on the provider record)
"""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi import Path as PathParam
from fastapi.responses import Response

from ....core.exceptions import NotFoundError
from ....core.responses import GenericResponse
from ....schemas.uploads import BlobUploadResponse
from ....services.upload_storage_service import (
    LocalUploadStorage,
    UploadStorage,
    get_upload_storage,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blobs")


def _local_storage(storage: UploadStorage) -> LocalUploadStorage:
    if not isinstance(storage, LocalUploadStorage):
        raise NotFoundError(message="Blob endpoints are only available with local storage")
    return storage


@router.put(
    "/{key:path}",
    response_model=GenericResponse[BlobUploadResponse],
    summary="Upload a blob to a signed URL",
    responses={
        403: {"description": "Signature invalid or expired"},
        413: {"description": "File too large"},
    },
)
async def put_blob(
    request: Request,
    key: Annotated[str, PathParam(description="Storage key issued with the upload URL")],
    expires: Annotated[int, Query(description="Expiry timestamp from the signed URL")],
    signature: Annotated[str, Query(description="Signature from the signed URL")],
    storage: Annotated[UploadStorage, Depends(get_upload_storage)],
) -> GenericResponse[BlobUploadResponse]:
    local = _local_storage(storage)
    content_type = request.headers.get("content-type", "")
    local.verify_upload(key, expires, signature, content_type)

    content = await request.body()
    size = await local.write_blob(key, content)

    return GenericResponse(
        message="Blob stored",
        data=BlobUploadResponse(key=key, file_size=size, url=local.object_url(key)),
    )


@router.get(
    "/{key:path}",
    summary="Retrieve a blob file",
    description="Serve an uploaded image by its storage key.",
    responses={
        200: {"description": "File content"},
        404: {"description": "Blob not found"},
    },
)
async def get_blob(
    key: Annotated[str, PathParam(description="Storage key")],
    storage: Annotated[UploadStorage, Depends(get_upload_storage)],
) -> Response:
    local = _local_storage(storage)
    content, media_type = await local.read_blob(key)
    logger.info(f"Serving blob: {key}")
    return Response(content=content, media_type=media_type)
