"""
Profile Content Commit Workflow.

Final onboarding step: uploads the headshot and gallery images, attaches
them to the provider record, imports the client reviews spreadsheet,
notifies the portal admins and closes the provider session.

Outcome rules:
- Missing session marker or file, or a submission already running:
  PRECONDITION_FAILED, nothing is sent anywhere.
- Image upload or record update fails: COMMIT_FAILED, session kept so the
  user can submit again. Nothing is retried automatically.
- Reviews import or notification fails: still COMPLETED; the import failure
  only changes the message shown, the notification failure is only logged.
"""
from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from ..core.config import Settings, get_settings
from ..core.exceptions import ProviderRecordError
from ..schemas.reviews import ReviewImportResult
from .api_client import PortalApiClient
from .notification_payload import build_signup_notification
from .session import ProviderSession
from .uploads import PendingUploads, SelectedFile

logger = structlog.get_logger(__name__)

MISSING_PROVIDER_MESSAGE = "Provider ID not found. Please start from the beginning."
MISSING_FILES_MESSAGE = "Please upload all required files before continuing."
IN_FLIGHT_MESSAGE = "Your files are already being uploaded. Please wait."
NO_PROVIDER_RETURNED = "Failed to save images - no provider data returned"
IMAGES_NOT_SAVED = "Images were not properly saved to provider record"

NotificationSink = Callable[[str, BaseException], None]


class SubmissionStatus(str, Enum):
    PRECONDITION_FAILED = "precondition_failed"
    COMMIT_FAILED = "commit_failed"
    COMPLETED = "completed"


@dataclass
class SubmissionOutcome:
    """What the user sees after pressing submit, and where they go next.

    ``next_step`` is None when the user stays on the profile-content step.
    """

    status: SubmissionStatus
    messages: list[str] = field(default_factory=list)
    next_step: str | None = None
    provider: dict[str, Any] | None = None
    reviews: ReviewImportResult | None = None

    @property
    def completed(self) -> bool:
        return self.status is SubmissionStatus.COMPLETED


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _log_notification_failure(provider_id: str, exc: BaseException) -> None:
    logger.warning(
        "provider_signup_notification_failed",
        provider_id=provider_id,
        error=_describe(exc),
        error_type=type(exc).__name__,
    )


def reviews_success_message(result: ReviewImportResult) -> str:
    message = f"Files uploaded successfully! {result.reviews_added} reviews were processed."
    if result.warnings is not None and result.warnings.message:
        message = f"{message} {result.warnings.message}"
    return message


def reviews_failure_message(exc: BaseException) -> str:
    return (
        "Images uploaded successfully, but there was an issue processing the reviews file: "
        f"{_describe(exc)}. Please check the file format and try again."
    )


def commit_failure_message(exc: BaseException) -> str:
    return f"Upload failed: {_describe(exc)}. Please try again."


class ProfileContentWorkflow:
    """Drives one profile-content submission against the portal API."""

    def __init__(
        self,
        api: PortalApiClient,
        *,
        entry_path: str = "/provider-portal",
        completion_path: str = "/completion",
        notification_sink: NotificationSink | None = None,
    ) -> None:
        self.api = api
        self.entry_path = entry_path
        self.completion_path = completion_path
        self.notification_sink = notification_sink or _log_notification_failure
        self._in_flight = False
        self._background: set[asyncio.Task[None]] = set()

    @classmethod
    def from_settings(
        cls,
        api: PortalApiClient,
        settings: Settings | None = None,
        notification_sink: NotificationSink | None = None,
    ) -> "ProfileContentWorkflow":
        settings = settings or get_settings()
        return cls(
            api,
            entry_path=settings.PORTAL_ENTRY_PATH,
            completion_path=settings.PORTAL_COMPLETION_PATH,
            notification_sink=notification_sink,
        )

    @property
    def in_flight(self) -> bool:
        """True while a submission runs; the submit control should be disabled."""
        return self._in_flight

    async def submit(self, session: ProviderSession, uploads: PendingUploads) -> SubmissionOutcome:
        if self._in_flight:
            return SubmissionOutcome(SubmissionStatus.PRECONDITION_FAILED, [IN_FLIGHT_MESSAGE])

        self._in_flight = True
        try:
            return await self._submit(session, uploads)
        finally:
            self._in_flight = False

    async def _submit(self, session: ProviderSession, uploads: PendingUploads) -> SubmissionOutcome:
        provider_id = await session.provider_id()
        if not provider_id:
            return SubmissionOutcome(
                SubmissionStatus.PRECONDITION_FAILED,
                [MISSING_PROVIDER_MESSAGE],
                next_step=self.entry_path,
            )

        headshot, gallery, reviews = uploads.headshot, uploads.gallery, uploads.reviews
        if headshot is None or gallery is None or reviews is None:
            return SubmissionOutcome(SubmissionStatus.PRECONDITION_FAILED, [MISSING_FILES_MESSAGE])

        log = logger.bind(provider_id=provider_id)

        try:
            headshot_key, gallery_key = await self._upload_images(headshot, gallery)
            provider = await self._save_image_references(provider_id, headshot_key, gallery_key)
        except Exception as exc:
            log.warning("profile_commit_failed", error=_describe(exc), error_type=type(exc).__name__)
            return SubmissionOutcome(SubmissionStatus.COMMIT_FAILED, [commit_failure_message(exc)])

        log.info("profile_images_committed", headshot_key=headshot_key, gallery_key=gallery_key)

        messages: list[str] = []
        result: ReviewImportResult | None = None
        try:
            result = await self.api.upload_reviews_excel(provider_id, reviews)
            messages.append(reviews_success_message(result))
        except Exception as exc:
            log.warning("reviews_import_failed", error=_describe(exc))
            messages.append(reviews_failure_message(exc))

        self._notify(provider_id, provider)

        await session.clear()
        log.info("profile_content_completed", reviews_added=result.reviews_added if result else None)
        return SubmissionOutcome(
            SubmissionStatus.COMPLETED,
            messages,
            next_step=self.completion_path,
            provider=provider,
            reviews=result,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _upload_file(self, file: SelectedFile) -> str:
        signature = await self.api.get_upload_signature(file.name, file.content_type)
        await self.api.upload_to_storage(file, signature.presigned_url)
        return signature.key

    async def _upload_images(self, headshot: SelectedFile, gallery: SelectedFile) -> tuple[str, str]:
        """Upload both images concurrently; the first failure cancels the other."""
        tasks = [
            asyncio.create_task(self._upload_file(headshot)),
            asyncio.create_task(self._upload_file(gallery)),
        ]
        try:
            headshot_key, gallery_key = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return headshot_key, gallery_key

    async def _save_image_references(
        self,
        provider_id: str,
        headshot_key: str,
        gallery_key: str,
    ) -> dict[str, Any]:
        saved = await self.api.save_image_urls(
            provider_id,
            headshot_key=headshot_key,
            gallery_key=gallery_key,
        )
        provider = saved.get("provider") if saved else None
        if not provider:
            raise ProviderRecordError(NO_PROVIDER_RETURNED, provider_id=provider_id)
        if not provider.get("headshot_url") or not provider.get("gallery_url"):
            raise ProviderRecordError(IMAGES_NOT_SAVED, provider_id=provider_id)
        return provider

    # ------------------------------------------------------------------
    # Detached notification
    # ------------------------------------------------------------------

    def _notify(self, provider_id: str, provider: dict[str, Any]) -> None:
        task = asyncio.create_task(self._send_notification(provider_id, provider))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _send_notification(self, provider_id: str, provider: dict[str, Any]) -> None:
        try:
            payload = build_signup_notification(provider_id, provider)
            result = await self.api.send_provider_signup_notification(payload)
        except Exception as exc:
            self.notification_sink(provider_id, exc)
            return
        logger.info(
            "provider_signup_notification_sent",
            provider_id=provider_id,
            recipients=len(result.recipients) if result is not None else 0,
        )

    @property
    def pending_notifications(self) -> int:
        return len(self._background)

    async def drain(self) -> None:
        """Wait for detached notifications; used at shutdown and in tests."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
