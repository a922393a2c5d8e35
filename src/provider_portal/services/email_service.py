"""
Email Service.

Async SMTP email delivery using aiosmtplib + stdlib email.mime.
Templates are loaded from config/email_templates.yaml and rendered
with simple str.format_map() substitution.

Usage
-----
    from provider_portal.services.email_service import EmailService, get_email_service

    email_svc: EmailService = Depends(get_email_service)
    await email_svc.send_provider_signup(
        recipients=["admin@example.com"],
        notification=payload,
    )
"""

from __future__ import annotations

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any

import aiosmtplib
import structlog
import yaml
from fastapi import Depends
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.config import Settings, get_settings
from ..core.exceptions import ServiceUnavailableError
from ..schemas.notifications import ProviderSignupNotification

log = structlog.get_logger(__name__)
_retry_logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Template loading
# ---------------------------------------------------------------------------

_TEMPLATE_CACHE: dict[str, Any] | None = None


def _load_templates(path: str) -> dict[str, Any]:
    """Load email templates from YAML.  Result is module-level cached so the
    file is only read once per process lifetime.
    """
    global _TEMPLATE_CACHE  # noqa: PLW0603
    if _TEMPLATE_CACHE is None:
        resolved = Path(path)
        if not resolved.is_absolute():
            # Resolve relative to the project root (two levels above src/)
            project_root = Path(__file__).parents[3]
            resolved = project_root / path
        with resolved.open(encoding="utf-8") as fh:
            _TEMPLATE_CACHE = yaml.safe_load(fh) or {}
        log.info("email_templates_loaded", path=str(resolved))
    return _TEMPLATE_CACHE


def _invalidate_template_cache() -> None:
    """Force next call to _load_templates to re-read disk.  Intended for tests."""
    global _TEMPLATE_CACHE  # noqa: PLW0603
    _TEMPLATE_CACHE = None


def get_template(name: str, templates_path: str) -> dict[str, str]:
    """Return the raw (un-rendered) subject + body_html + body_text for *name*."""
    tmpl = _load_templates(templates_path).get(name)
    if not tmpl:
        raise ValueError(f"No email template found for '{name}'")
    return {
        "subject": tmpl.get("subject", ""),
        "body_html": tmpl.get("body_html", ""),
        "body_text": tmpl.get("body_text", ""),
    }


def render_template(template: dict[str, str], variables: dict[str, str]) -> dict[str, str]:
    """Substitute ``{placeholders}`` in subject/body with *variables*.

    Unknown placeholders are left as-is.
    """

    class _SafeMap(dict):  # type: ignore[type-arg]
        def __missing__(self, key: str) -> str:
            return f"{{{key}}}"

    safe = _SafeMap(variables)
    return {
        "subject": template["subject"].format_map(safe),
        "body_html": template["body_html"].format_map(safe),
        "body_text": template["body_text"].format_map(safe),
    }


def _join(items: list[Any], empty: str = "None listed") -> str:
    parts = []
    for item in items:
        if isinstance(item, dict):
            parts.append(", ".join(str(v) for v in item.values() if v))
        elif item:
            parts.append(str(item))
    return "; ".join(parts) if parts else empty


# ---------------------------------------------------------------------------
# EmailService
# ---------------------------------------------------------------------------


class EmailService:
    """Async SMTP email service, instantiated per request via ``get_email_service()``."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def build_signup_template_vars(self, notification: ProviderSignupNotification) -> dict[str, str]:
        """Assemble the substitution dictionary for a provider-signup email."""
        return {
            "provider_id": notification.id,
            "provider_name": notification.name,
            "provider_email": notification.email,
            "practice_name": notification.practice_name,
            "phone": notification.phone,
            "address": notification.address,
            "npi_number": notification.npi_number,
            "specialties": _join(notification.specialties),
            "certifications": _join(notification.certifications),
            "hospital_affiliations": _join(notification.hospital_affiliations),
            "education_and_training": _join(notification.education_and_training),
            "platform_name": self._settings.EMAIL_FROM_NAME,
        }

    async def send_provider_signup(
        self,
        *,
        recipients: list[str],
        notification: ProviderSignupNotification,
    ) -> None:
        """Tell the portal admins that a provider finished onboarding.

        Raises:
            ServiceUnavailableError: If email is disabled in settings.
            aiosmtplib.SMTPException: On SMTP transport errors.
        """
        if not self._settings.EMAIL_ENABLED:
            log.warning("email_skipped_disabled", provider_id=notification.id)
            raise ServiceUnavailableError(
                "Email sending is disabled.  Set EMAIL_ENABLED=true and configure SMTP settings.",
                error_code="EMAIL_DISABLED",
            )

        raw = get_template("provider_signup", self._settings.EMAIL_TEMPLATES_PATH)
        rendered = render_template(raw, self.build_signup_template_vars(notification))

        msg = MIMEMultipart("alternative")
        msg["Subject"] = rendered["subject"]
        msg["From"] = f"{self._settings.EMAIL_FROM_NAME} <{self._settings.EMAIL_FROM_ADDRESS}>"
        msg["To"] = ", ".join(recipients)

        # Plain-text first, HTML second (RFC 2046 preference order)
        msg.attach(MIMEText(rendered["body_text"], "plain", "utf-8"))
        msg.attach(MIMEText(rendered["body_html"], "html", "utf-8"))

        log.info(
            "email_sending",
            to=recipients,
            provider_id=notification.id,
            smtp_host=self._settings.SMTP_HOST,
        )
        await self._smtp_send(msg)
        log.info("email_sent", to=recipients, provider_id=notification.id)

    # ------------------------------------------------------------------
    # SMTP transport
    # ------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(
            (aiosmtplib.SMTPConnectError, aiosmtplib.SMTPServerDisconnected)
        ),
        before_sleep=before_sleep_log(_retry_logger, logging.WARNING),
        reraise=True,
    )
    async def _smtp_send(self, msg: MIMEMultipart) -> None:
        """Low-level SMTP dispatch.  Handles STARTTLS and implicit-SSL modes.

        Connection drops are retried; rejected messages and auth failures are not.
        """
        s = self._settings
        kwargs: dict[str, Any] = {
            "hostname": s.SMTP_HOST,
            "port": s.SMTP_PORT,
            "timeout": s.EMAIL_TIMEOUT_SECONDS,
            "use_tls": s.SMTP_USE_SSL,
        }

        try:
            async with aiosmtplib.SMTP(**kwargs) as smtp:
                if s.SMTP_USE_TLS and not s.SMTP_USE_SSL:
                    await smtp.starttls()
                if s.SMTP_USERNAME and s.SMTP_PASSWORD:
                    await smtp.login(s.SMTP_USERNAME, s.SMTP_PASSWORD)
                await smtp.send_message(msg)
        except aiosmtplib.SMTPException as exc:
            log.error("smtp_error", error=str(exc), smtp_host=s.SMTP_HOST, smtp_port=s.SMTP_PORT)
            raise
        except TimeoutError as exc:
            log.error("smtp_timeout", smtp_host=s.SMTP_HOST, smtp_port=s.SMTP_PORT)
            raise aiosmtplib.SMTPConnectTimeoutError(
                f"SMTP connection timed out after {s.EMAIL_TIMEOUT_SECONDS}s"
            ) from exc


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------


def get_email_service(
    settings: Settings = Depends(get_settings),
) -> EmailService:
    """FastAPI dependency: returns a per-request ``EmailService`` instance."""
    return EmailService(settings)
