"""
Portal API Client.

Async HTTP client for the services the onboarding workflow talks to:
upload authorization, direct storage transfer, provider record update,
client-review import and provider-signup notification.

Every failure (transport error or non-2xx answer) surfaces as an
``ExternalServiceError`` whose message is the server's own error message
when one was returned, so it can be shown to the user unchanged.
"""
from __future__ import annotations

from typing import Any

import httpx
import structlog

from ..core.config import Settings, get_settings
from ..core.exceptions import ExternalServiceError
from ..schemas.notifications import NotificationDispatchResult, ProviderSignupNotification
from ..schemas.provider import ProviderCreate
from ..schemas.reviews import ReviewImportResult
from ..schemas.uploads import UploadSignatureResponse
from .uploads import SelectedFile

logger = structlog.get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
        if isinstance(body.get("detail"), str):
            return body["detail"]
    return f"Request failed with status code {response.status_code}"


class PortalApiClient:
    """
    Thin wrapper over ``httpx.AsyncClient`` for the portal API.

    Usage:
        async with PortalApiClient.from_settings() as api:
            signature = await api.get_upload_signature("me.jpg", "image/jpeg")
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "PortalApiClient":
        settings = settings or get_settings()
        return cls(settings.PORTAL_API_BASE_URL, settings.PORTAL_API_TIMEOUT, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "PortalApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Transport helpers
    # ------------------------------------------------------------------

    async def _request(self, service: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("portal_api_transport_error", service=service, error=str(exc))
            raise ExternalServiceError(service, str(exc) or type(exc).__name__) from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "portal_api_error",
                service=service,
                status_code=response.status_code,
                message=message,
            )
            raise ExternalServiceError(
                service,
                message,
                details={"status_code": response.status_code},
            )
        return response

    async def _data(self, service: str, method: str, url: str, **kwargs: Any) -> Any:
        """Call a JSON endpoint and return the ``data`` member of its envelope."""
        response = await self._request(service, method, url, **kwargs)
        try:
            body = response.json()
        except ValueError as exc:
            raise ExternalServiceError(service, "Response was not valid JSON") from exc
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    # ------------------------------------------------------------------
    # Provider records
    # ------------------------------------------------------------------

    async def create_provider(self, data: ProviderCreate) -> dict[str, Any]:
        return await self._data("provider_records", "POST", "/providers", json=data.model_dump(mode="json"))

    async def get_provider(self, provider_id: str | int) -> dict[str, Any]:
        return await self._data("provider_records", "GET", f"/providers/{provider_id}")

    async def save_image_urls(
        self,
        provider_id: str | int,
        *,
        headshot_key: str,
        gallery_key: str,
    ) -> dict[str, Any]:
        """Attach storage keys to the provider; returns ``{"provider": record}`` as sent by the server."""
        data = await self._data(
            "provider_records",
            "PUT",
            f"/providers/{provider_id}/images",
            json={"headshot_key": headshot_key, "gallery_key": gallery_key},
        )
        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def get_upload_signature(self, file_name: str, content_type: str) -> UploadSignatureResponse:
        data = await self._data(
            "upload_authorization",
            "POST",
            "/uploads/signature",
            json={"file_name": file_name, "content_type": content_type},
        )
        return UploadSignatureResponse.model_validate(data)

    async def upload_to_storage(self, file: SelectedFile, presigned_url: str) -> None:
        """PUT the file bytes to a presigned URL (S3 or the local blob endpoint)."""
        await self._request(
            "storage",
            "PUT",
            presigned_url,
            content=file.content,
            headers={"Content-Type": file.content_type},
        )
        logger.debug("storage_upload_complete", file_name=file.name, size=file.size)

    async def upload_reviews_excel(self, provider_id: str | int, file: SelectedFile) -> ReviewImportResult:
        data = await self._data(
            "review_import",
            "POST",
            f"/providers/{provider_id}/reviews/excel",
            files={"file": (file.name, file.content, file.content_type)},
        )
        return ReviewImportResult.model_validate(data)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def send_provider_signup_notification(
        self,
        payload: ProviderSignupNotification,
    ) -> NotificationDispatchResult:
        data = await self._data(
            "notifications",
            "POST",
            "/notifications/provider-signup",
            json=payload.model_dump(mode="json"),
        )
        return NotificationDispatchResult.model_validate(data)
