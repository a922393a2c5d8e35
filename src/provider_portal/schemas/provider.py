"""Provider schemas.

Pydantic models for the provider record exchanged between the portal API and
the onboarding client.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProviderBase(BaseModel):
    """Practice information and qualifications collected by the earlier steps."""

    provider_name: str | None = Field(default=None, max_length=200, description="Practitioner's full name")
    email: str | None = Field(default=None, max_length=255, description="Contact email")
    practice_name: str | None = Field(default=None, max_length=255, description="Practice name")
    phone: str | None = Field(default=None, max_length=30, description="Practice phone number")
    address: str | None = Field(default=None, description="Practice address")
    specialties: list[str] = Field(default_factory=list, description="Clinical specialties")
    board_certifications: list[str] = Field(default_factory=list, description="Board certifications")
    npi_number: str | None = Field(default=None, max_length=20, description="National Provider Identifier")
    hospital_affiliations: list[str] = Field(default_factory=list, description="Hospital affiliations")
    education_and_training: list[Any] = Field(default_factory=list, description="Education and training entries")


class ProviderCreate(ProviderBase):
    """Payload for creating a provider record (practice-information step)."""

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str | None) -> str | None:
        return v.strip().lower() if v else v


class ProviderResponse(ProviderBase):
    """API response model for a provider record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    headshot_url: str | None = None
    gallery_url: str | None = None
    created_at: datetime
    updated_at: datetime


class ProviderImagesUpdate(BaseModel):
    """Storage keys returned by the upload-authorization service."""

    headshot_key: str = Field(..., min_length=1, description="Storage key of the uploaded headshot")
    gallery_key: str = Field(..., min_length=1, description="Storage key of the uploaded gallery photo")


class ProviderImagesSaved(BaseModel):
    """Result of attaching image references to a provider record."""

    provider: ProviderResponse
