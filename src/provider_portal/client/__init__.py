"""Client package - onboarding workflow run against the portal API."""
from .api_client import PortalApiClient
from .notification_payload import build_signup_notification
from .profile_content import ProfileContentWorkflow, SubmissionOutcome, SubmissionStatus
from .session import (
    InMemorySessionStore,
    ProviderSession,
    RedisSessionStore,
    SessionStore,
    create_session_store,
)
from .uploads import PendingUploads, SelectedFile, UploadSlot

__all__ = [
    "InMemorySessionStore",
    "PendingUploads",
    "PortalApiClient",
    "ProfileContentWorkflow",
    "ProviderSession",
    "RedisSessionStore",
    "SelectedFile",
    "SessionStore",
    "SubmissionOutcome",
    "SubmissionStatus",
    "UploadSlot",
    "build_signup_notification",
    "create_session_store",
]
