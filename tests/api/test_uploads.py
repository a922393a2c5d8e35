"""API tests for upload authorization."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest

from src.provider_portal.main import app
from src.provider_portal.services.upload_storage_service import UploadStorageError, get_upload_storage

if TYPE_CHECKING:
    from httpx import AsyncClient


@pytest.mark.asyncio
async def test_signature_for_image(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/uploads/signature",
        json={"file_name": "headshot.JPG", "content_type": "image/jpeg"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["key"].startswith("providers/")
    assert data["key"].endswith(".jpg")
    assert data["presigned_url"].startswith(f"http://test/api/v1/blobs/{data['key']}?")
    assert "signature=" in data["presigned_url"]
    assert data["expires_in"] == 300


@pytest.mark.asyncio
async def test_each_signature_has_fresh_key(client: AsyncClient) -> None:
    payload = {"file_name": "photo.png", "content_type": "image/png"}
    first = await client.post("/api/v1/uploads/signature", json=payload)
    second = await client.post("/api/v1/uploads/signature", json=payload)

    assert first.json()["data"]["key"] != second.json()["data"]["key"]


@pytest.mark.asyncio
async def test_non_image_rejected(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/uploads/signature",
        json={"file_name": "resume.pdf", "content_type": "application/pdf"},
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "FILE_VALIDATION_ERROR"
    assert error["message"] == "Only JPG/PNG image files are allowed for this field."


@pytest.mark.asyncio
async def test_storage_failure_is_bad_gateway(client: AsyncClient) -> None:
    storage = AsyncMock()
    storage.create_upload_authorization.side_effect = UploadStorageError("S3 presign failed: denied")
    app.dependency_overrides[get_upload_storage] = lambda: storage

    response = await client.post(
        "/api/v1/uploads/signature",
        json={"file_name": "headshot.jpg", "content_type": "image/jpeg"},
    )

    assert response.status_code == 502
    error = response.json()["error"]
    assert error["code"] == "EXTERNAL_SERVICE_ERROR"
    assert error["details"]["service"] == "storage"
