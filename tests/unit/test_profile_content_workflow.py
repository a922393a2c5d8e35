"""Unit tests for the profile-content commit workflow.

The portal API is replaced by an AsyncMock so every collaborator call can be
asserted on; the session marker lives in an in-memory store.
"""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.provider_portal.client.profile_content import (
    IMAGES_NOT_SAVED,
    MISSING_FILES_MESSAGE,
    MISSING_PROVIDER_MESSAGE,
    NO_PROVIDER_RETURNED,
    ProfileContentWorkflow,
    SubmissionStatus,
)
from src.provider_portal.client.session import PROVIDER_ID_KEY, InMemorySessionStore, ProviderSession
from src.provider_portal.client.uploads import PendingUploads, SelectedFile
from src.provider_portal.core.exceptions import ExternalServiceError
from src.provider_portal.schemas.notifications import NotificationDispatchResult
from src.provider_portal.schemas.reviews import ReviewImportResult, ReviewImportWarning
from src.provider_portal.schemas.uploads import UploadSignatureResponse

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADSHOT = SelectedFile("headshot.jpg", "image/jpeg", b"\xff\xd8jpeg")
GALLERY = SelectedFile("gallery.png", "image/png", b"\x89PNGpng")
REVIEWS = SelectedFile("reviews.xlsx", XLSX, b"PK\x03\x04xlsx")

SAVED_PROVIDER = {
    "id": 123,
    "provider_name": "Dr. Jane Doe",
    "email": "jane@clinic.com",
    "practice_name": "Doe Family Practice",
    "phone": None,
    "address": "1 Main St",
    "specialties": ["Family Medicine"],
    "board_certifications": [],
    "npi_number": "",
    "hospital_affiliations": None,
    "education_and_training": [],
    "headshot_url": "https://bucket.s3.amazonaws.com/providers/h.jpg",
    "gallery_url": "https://bucket.s3.amazonaws.com/providers/g.png",
}


def _signature(file_name: str, content_type: str) -> UploadSignatureResponse:
    return UploadSignatureResponse(
        presigned_url=f"https://bucket.s3.amazonaws.com/providers/{file_name}?sig=1",
        key=f"providers/{file_name}",
        expires_in=300,
    )


def make_api() -> AsyncMock:
    api = AsyncMock()
    api.get_upload_signature = AsyncMock(side_effect=_signature)
    api.upload_to_storage = AsyncMock(return_value=None)
    api.save_image_urls = AsyncMock(return_value={"provider": dict(SAVED_PROVIDER)})
    api.upload_reviews_excel = AsyncMock(return_value=ReviewImportResult(reviews_added=12))
    api.send_provider_signup_notification = AsyncMock(
        return_value=NotificationDispatchResult(recipients=["admin@portal.com"])
    )
    return api


@pytest.fixture
def api() -> AsyncMock:
    return make_api()


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore({PROVIDER_ID_KEY: "p123"})


@pytest.fixture
def session(store: InMemorySessionStore) -> ProviderSession:
    return ProviderSession(store)


@pytest.fixture
def uploads() -> PendingUploads:
    pending = PendingUploads()
    pending.select("headshot", HEADSHOT)
    pending.select("gallery", GALLERY)
    pending.select("reviews", REVIEWS)
    return pending


@pytest.fixture
def sink_calls() -> list:
    return []


@pytest.fixture
def workflow(api: AsyncMock, sink_calls: list) -> ProfileContentWorkflow:
    return ProfileContentWorkflow(
        api,
        notification_sink=lambda provider_id, exc: sink_calls.append((provider_id, exc)),
    )


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


class TestPreconditions:
    async def test_missing_session_marker_redirects_without_network(self, api, workflow, uploads):
        session = ProviderSession(InMemorySessionStore())

        outcome = await workflow.submit(session, uploads)

        assert outcome.status is SubmissionStatus.PRECONDITION_FAILED
        assert outcome.messages == [MISSING_PROVIDER_MESSAGE]
        assert outcome.next_step == "/provider-portal"
        assert api.method_calls == []

    async def test_blank_session_marker_counts_as_missing(self, api, workflow, uploads):
        session = ProviderSession(InMemorySessionStore({PROVIDER_ID_KEY: "   "}))

        outcome = await workflow.submit(session, uploads)

        assert outcome.status is SubmissionStatus.PRECONDITION_FAILED
        assert api.method_calls == []

    @pytest.mark.parametrize("missing", ["headshot", "gallery", "reviews"])
    async def test_any_empty_slot_aborts_without_network(self, api, workflow, session, store, uploads, missing):
        uploads.clear(missing)

        outcome = await workflow.submit(session, uploads)

        assert outcome.status is SubmissionStatus.PRECONDITION_FAILED
        assert outcome.messages == [MISSING_FILES_MESSAGE]
        assert outcome.next_step is None
        assert api.method_calls == []
        assert await store.get(PROVIDER_ID_KEY) == "p123"

    async def test_second_submit_while_in_flight_is_rejected(self, api, workflow, session, uploads):
        release = asyncio.Event()

        async def slow_upload(file, url):
            await release.wait()

        api.upload_to_storage.side_effect = slow_upload

        first = asyncio.create_task(workflow.submit(session, uploads))
        while not workflow.in_flight:
            await asyncio.sleep(0)

        second = await workflow.submit(session, uploads)
        assert second.status is SubmissionStatus.PRECONDITION_FAILED

        release.set()
        outcome = await first
        assert outcome.status is SubmissionStatus.COMPLETED
        assert workflow.in_flight is False
        assert api.save_image_urls.await_count == 1
        await workflow.drain()


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestCompleted:
    async def test_full_commit_reports_reviews_and_clears_session(self, api, workflow, session, store, uploads):
        outcome = await workflow.submit(session, uploads)
        await workflow.drain()

        assert outcome.status is SubmissionStatus.COMPLETED
        assert outcome.completed is True
        assert outcome.messages == ["Files uploaded successfully! 12 reviews were processed."]
        assert outcome.next_step == "/completion"
        assert PROVIDER_ID_KEY not in store

    async def test_each_image_is_signed_then_uploaded(self, api, workflow, session, uploads):
        await workflow.submit(session, uploads)
        await workflow.drain()

        signed = sorted(call.args for call in api.get_upload_signature.await_args_list)
        assert signed == [("gallery.png", "image/png"), ("headshot.jpg", "image/jpeg")]

        uploaded = {call.args[0].name: call.args[1] for call in api.upload_to_storage.await_args_list}
        assert uploaded["headshot.jpg"].endswith("providers/headshot.jpg?sig=1")
        assert uploaded["gallery.png"].endswith("providers/gallery.png?sig=1")

    async def test_keys_are_saved_against_the_session_provider(self, api, workflow, session, uploads):
        await workflow.submit(session, uploads)
        await workflow.drain()

        api.save_image_urls.assert_awaited_once_with(
            "p123",
            headshot_key="providers/headshot.jpg",
            gallery_key="providers/gallery.png",
        )
        api.upload_reviews_excel.assert_awaited_once_with("p123", REVIEWS)

    async def test_import_warning_is_appended_to_the_message(self, api, workflow, session, uploads):
        api.upload_reviews_excel.return_value = ReviewImportResult(
            reviews_added=3,
            warnings=ReviewImportWarning(message="2 row(s) were skipped.", skipped_rows=[4, 7]),
        )

        outcome = await workflow.submit(session, uploads)
        await workflow.drain()

        assert outcome.messages == ["Files uploaded successfully! 3 reviews were processed. 2 row(s) were skipped."]

    async def test_notification_payload_built_from_saved_record(self, api, workflow, session, uploads):
        await workflow.submit(session, uploads)
        await workflow.drain()

        payload = api.send_provider_signup_notification.await_args.args[0]
        assert payload.id == "p123"
        assert payload.name == "Dr. Jane Doe"
        assert payload.phone == "Phone not provided"
        assert payload.npi_number == "NPI not provided"
        assert payload.hospital_affiliations == []

    async def test_settings_paths_are_used(self, api, session, uploads):
        workflow = ProfileContentWorkflow(api, entry_path="/start", completion_path="/done")

        outcome = await workflow.submit(session, uploads)
        await workflow.drain()

        assert outcome.next_step == "/done"


# ---------------------------------------------------------------------------
# Commit failures (uploads and record update)
# ---------------------------------------------------------------------------


class TestCommitFailed:
    async def test_gallery_upload_failure_keeps_session_and_skips_record(self, api, workflow, session, store, uploads):
        async def upload(file, url):
            if file.name == "gallery.png":
                raise ExternalServiceError("storage", "Request failed with status code 403")

        api.upload_to_storage.side_effect = upload

        outcome = await workflow.submit(session, uploads)

        assert outcome.status is SubmissionStatus.COMMIT_FAILED
        assert outcome.messages == ["Upload failed: Request failed with status code 403. Please try again."]
        assert outcome.next_step is None
        api.save_image_urls.assert_not_awaited()
        api.upload_reviews_excel.assert_not_awaited()
        api.send_provider_signup_notification.assert_not_awaited()
        assert await store.get(PROVIDER_ID_KEY) == "p123"

    async def test_signature_failure_fails_the_commit(self, api, workflow, session, uploads):
        api.get_upload_signature.side_effect = ExternalServiceError(
            "upload_authorization", "Only JPG/PNG image files are allowed for this field."
        )

        outcome = await workflow.submit(session, uploads)

        assert outcome.status is SubmissionStatus.COMMIT_FAILED
        api.upload_to_storage.assert_not_awaited()

    async def test_failed_upload_cancels_the_sibling_transfer(self, api, workflow, session, uploads):
        cancelled = asyncio.Event()

        async def upload(file, url):
            if file.name == "headshot.jpg":
                try:
                    await asyncio.sleep(10)
                except asyncio.CancelledError:
                    cancelled.set()
                    raise
            else:
                raise ExternalServiceError("storage", "connection reset")

        api.upload_to_storage.side_effect = upload

        outcome = await workflow.submit(session, uploads)

        assert outcome.status is SubmissionStatus.COMMIT_FAILED
        assert cancelled.is_set()

    async def test_missing_record_in_response_is_fatal(self, api, workflow, session, store, uploads):
        api.save_image_urls.return_value = {}

        outcome = await workflow.submit(session, uploads)

        assert outcome.status is SubmissionStatus.COMMIT_FAILED
        assert outcome.messages == [f"Upload failed: {NO_PROVIDER_RETURNED}. Please try again."]
        api.upload_reviews_excel.assert_not_awaited()
        api.send_provider_signup_notification.assert_not_awaited()
        assert await store.get(PROVIDER_ID_KEY) == "p123"

    @pytest.mark.parametrize("field", ["headshot_url", "gallery_url"])
    @pytest.mark.parametrize("value", ["", None])
    async def test_record_without_image_url_is_fatal(self, api, workflow, session, uploads, field, value):
        provider = dict(SAVED_PROVIDER)
        provider[field] = value
        api.save_image_urls.return_value = {"provider": provider}

        outcome = await workflow.submit(session, uploads)

        assert outcome.status is SubmissionStatus.COMMIT_FAILED
        assert outcome.messages == [f"Upload failed: {IMAGES_NOT_SAVED}. Please try again."]
        api.upload_reviews_excel.assert_not_awaited()
        api.send_provider_signup_notification.assert_not_awaited()

    async def test_failures_are_not_retried(self, api, workflow, session, uploads):
        api.save_image_urls.side_effect = ExternalServiceError("provider_records", "Provider not found: p123")

        outcome = await workflow.submit(session, uploads)

        assert outcome.messages == ["Upload failed: Provider not found: p123. Please try again."]
        assert api.save_image_urls.await_count == 1
        assert api.upload_to_storage.await_count == 2

    async def test_user_can_resubmit_after_commit_failure(self, api, workflow, session, store, uploads):
        api.save_image_urls.side_effect = [ExternalServiceError("provider_records", "timeout"), {"provider": SAVED_PROVIDER}]

        first = await workflow.submit(session, uploads)
        second = await workflow.submit(session, uploads)
        await workflow.drain()

        assert first.status is SubmissionStatus.COMMIT_FAILED
        assert second.status is SubmissionStatus.COMPLETED
        assert PROVIDER_ID_KEY not in store


# ---------------------------------------------------------------------------
# Isolated failures (import and notification)
# ---------------------------------------------------------------------------


class TestIsolatedFailures:
    async def test_import_failure_still_completes(self, api, workflow, session, store, uploads):
        api.upload_reviews_excel.side_effect = ExternalServiceError(
            "review_import", "Spreadsheet is missing required column(s): Review"
        )

        outcome = await workflow.submit(session, uploads)
        await workflow.drain()

        assert outcome.status is SubmissionStatus.COMPLETED
        assert outcome.next_step == "/completion"
        assert outcome.reviews is None
        assert outcome.messages == [
            "Images uploaded successfully, but there was an issue processing the reviews file: "
            "Spreadsheet is missing required column(s): Review. Please check the file format and try again."
        ]
        assert PROVIDER_ID_KEY not in store
        api.send_provider_signup_notification.assert_awaited_once()

    async def test_notification_failure_is_invisible_to_the_user(self, api, workflow, session, store, uploads, sink_calls):
        error = ExternalServiceError("notifications", "Email sending is disabled.")
        api.send_provider_signup_notification.side_effect = error

        outcome = await workflow.submit(session, uploads)
        await workflow.drain()

        assert outcome.status is SubmissionStatus.COMPLETED
        assert outcome.next_step == "/completion"
        assert all("notif" not in message.lower() for message in outcome.messages)
        assert PROVIDER_ID_KEY not in store
        assert sink_calls == [("p123", error)]

    async def test_notification_is_not_awaited_by_the_commit(self, api, workflow, session, uploads, sink_calls):
        release = asyncio.Event()

        async def slow_send(payload):
            await release.wait()
            return NotificationDispatchResult(recipients=["admin@portal.com"])

        api.send_provider_signup_notification.side_effect = slow_send

        outcome = await workflow.submit(session, uploads)

        assert outcome.status is SubmissionStatus.COMPLETED
        assert workflow.pending_notifications == 1

        release.set()
        await workflow.drain()
        assert workflow.pending_notifications == 0
        assert sink_calls == []
