"""
Notification Endpoints.

Emails the portal admins when a provider finishes onboarding. Recipients are
every admin user plus NOTIFICATION_FALLBACK_RECIPIENTS.
"""
from typing import Annotated

import aiosmtplib
import structlog
from fastapi import APIRouter, Depends

from ....core.config import Settings, get_settings
from ....core.exceptions import ExternalServiceError, ServiceUnavailableError
from ....core.responses import GenericResponse
from ....db.session import DbSession
from ....repositories.user_repository import UserRepository
from ....schemas.notifications import NotificationDispatchResult, ProviderSignupNotification
from ....services.email_service import EmailService, get_email_service

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/notifications")


@router.post(
    "/provider-signup",
    response_model=GenericResponse[NotificationDispatchResult],
    summary="Notify admins of a provider signup",
    responses={
        502: {"description": "SMTP server rejected or dropped the message"},
        503: {"description": "Email disabled or no recipients configured"},
    },
)
async def notify_provider_signup(
    payload: ProviderSignupNotification,
    db: DbSession,
    settings: Annotated[Settings, Depends(get_settings)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> GenericResponse[NotificationDispatchResult]:
    recipients = await UserRepository(db).get_admin_emails()
    for address in settings.notification_fallback_recipients_list:
        if address.lower() not in recipients:
            recipients.append(address.lower())

    if not recipients:
        raise ServiceUnavailableError(
            message="No notification recipients configured",
            error_code="NO_NOTIFICATION_RECIPIENTS",
        )

    try:
        await email_service.send_provider_signup(recipients=recipients, notification=payload)
    except aiosmtplib.SMTPException as e:
        raise ExternalServiceError("smtp", f"Failed to send notification: {e}") from e

    log.info("provider_signup_notified", provider_id=payload.id, recipients=len(recipients))
    return GenericResponse(
        message="Notification sent",
        data=NotificationDispatchResult(recipients=recipients),
    )
