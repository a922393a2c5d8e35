"""Tests for the provider-signup email service."""
from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import aiosmtplib
import pytest

from src.provider_portal.core.config import Settings
from src.provider_portal.core.exceptions import ServiceUnavailableError
from src.provider_portal.schemas.notifications import ProviderSignupNotification
from src.provider_portal.services import email_service as email_module
from src.provider_portal.services.email_service import (
    EmailService,
    _invalidate_template_cache,
    get_template,
    render_template,
)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture(autouse=True)
def _fresh_templates():
    _invalidate_template_cache()
    yield
    _invalidate_template_cache()


@pytest.fixture
def notification() -> ProviderSignupNotification:
    return ProviderSignupNotification(
        id="17",
        name="Dr. Jane Doe",
        email="jane@clinic.com",
        practice_name="Doe Family Practice",
        phone="Phone not provided",
        address="1 Main St",
        npi_number="1234567890",
        specialties=["Family Medicine", "Pediatrics"],
        certifications=[],
        hospital_affiliations=["Springfield General"],
        education_and_training=[{"institution": "State University", "degree": "MD"}],
    )


def _settings(**overrides) -> Settings:
    values = {
        "EMAIL_ENABLED": True,
        "SMTP_HOST": "smtp.test",
        "SMTP_PORT": 587,
        "EMAIL_FROM_ADDRESS": "noreply@portal.test",
        "EMAIL_FROM_NAME": "Provider Portal",
        "EMAIL_TEMPLATES_PATH": str(PROJECT_ROOT / "config" / "email_templates.yaml"),
    }
    values.update(overrides)
    return Settings(**values)


def test_provider_signup_template_exists():
    template = get_template("provider_signup", str(PROJECT_ROOT / "config" / "email_templates.yaml"))
    assert "{provider_name}" in template["subject"]
    assert "{npi_number}" in template["body_text"]


def test_unknown_template_raises():
    with pytest.raises(ValueError, match="No email template"):
        get_template("missing", str(PROJECT_ROOT / "config" / "email_templates.yaml"))


def test_render_leaves_unknown_placeholders():
    rendered = render_template(
        {"subject": "Hi {name}", "body_html": "<p>{other}</p>", "body_text": "{name}"},
        {"name": "Jane"},
    )
    assert rendered == {"subject": "Hi Jane", "body_html": "<p>{other}</p>", "body_text": "Jane"}


def test_template_vars_flatten_lists(notification):
    variables = EmailService(_settings()).build_signup_template_vars(notification)
    assert variables["specialties"] == "Family Medicine; Pediatrics"
    assert variables["certifications"] == "None listed"
    assert variables["education_and_training"] == "State University, MD"
    assert variables["provider_id"] == "17"


@pytest.mark.asyncio
async def test_disabled_email_raises_service_unavailable(notification):
    service = EmailService(_settings(EMAIL_ENABLED=False))
    with pytest.raises(ServiceUnavailableError) as exc_info:
        await service.send_provider_signup(recipients=["admin@portal.test"], notification=notification)
    assert exc_info.value.error_code == "EMAIL_DISABLED"


@pytest.mark.asyncio
async def test_send_builds_multipart_message(notification):
    service = EmailService(_settings())
    with patch.object(EmailService, "_smtp_send", new_callable=AsyncMock) as smtp_send:
        await service.send_provider_signup(
            recipients=["admin@portal.test", "ops@portal.test"],
            notification=notification,
        )

    msg = smtp_send.await_args.args[0]
    assert msg["Subject"] == "New provider signup: Dr. Jane Doe (Doe Family Practice)"
    assert msg["To"] == "admin@portal.test, ops@portal.test"
    assert msg["From"] == "Provider Portal <noreply@portal.test>"
    parts = msg.get_payload()
    assert [part.get_content_type() for part in parts] == ["text/plain", "text/html"]
    assert "1234567890" in parts[0].get_payload(decode=True).decode("utf-8")


@pytest.mark.asyncio
async def test_smtp_transport_uses_starttls_and_login(notification):
    smtp = AsyncMock()
    smtp.__aenter__.return_value = smtp
    service = EmailService(_settings(SMTP_USERNAME="user", SMTP_PASSWORD="pass"))

    with patch.object(email_module.aiosmtplib, "SMTP", return_value=smtp) as smtp_cls:
        await service.send_provider_signup(recipients=["admin@portal.test"], notification=notification)

    assert smtp_cls.call_args.kwargs["hostname"] == "smtp.test"
    assert smtp_cls.call_args.kwargs["use_tls"] is False
    smtp.starttls.assert_awaited_once()
    smtp.login.assert_awaited_once_with("user", "pass")
    smtp.send_message.assert_awaited_once()


@pytest.mark.asyncio
async def test_smtp_rejection_is_not_retried(notification):
    smtp = AsyncMock()
    smtp.__aenter__.return_value = smtp
    smtp.send_message.side_effect = aiosmtplib.SMTPRecipientsRefused([])
    service = EmailService(_settings())

    with patch.object(email_module.aiosmtplib, "SMTP", return_value=smtp):
        with pytest.raises(aiosmtplib.SMTPRecipientsRefused):
            await service.send_provider_signup(recipients=["admin@portal.test"], notification=notification)

    assert smtp.send_message.await_count == 1
