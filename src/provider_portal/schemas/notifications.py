"""Provider signup notification schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ProviderSignupNotification(BaseModel):
    """Notification payload describing a provider that finished onboarding.

    Every field is populated; absent record values are replaced by
    placeholders before the payload is built.
    """

    id: str = Field(..., min_length=1)
    name: str
    email: str
    practice_name: str
    phone: str
    specialties: list[str] = Field(default_factory=list)
    address: str
    certifications: list[str] = Field(default_factory=list)
    npi_number: str
    hospital_affiliations: list[str] = Field(default_factory=list)
    education_and_training: list[Any] = Field(default_factory=list)


class NotificationDispatchResult(BaseModel):
    """Acknowledgement returned by the notification endpoint."""

    recipients: list[str]
