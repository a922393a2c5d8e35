"""Upload schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class UploadSignatureRequest(BaseModel):
    """Request for a short-lived write credential."""

    file_name: str = Field(..., min_length=1, max_length=255, description="Original file name")
    content_type: str = Field(..., min_length=1, max_length=100, description="MIME type of the file")


class UploadSignatureResponse(BaseModel):
    """Write credential plus the storage key the object will live under."""

    presigned_url: str = Field(description="URL accepting a single PUT of the file bytes")
    key: str = Field(description="Opaque storage key to persist on the provider record")
    expires_in: int = Field(description="Seconds until the URL stops being accepted")


class BlobUploadResponse(BaseModel):
    """Acknowledgement of a local blob write."""

    key: str
    file_size: int
    url: str
