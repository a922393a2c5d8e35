"""
Provider Model.

SQLAlchemy 2.0 ORM model for the provider record that the onboarding steps
fill in: practice information, practitioner qualifications and, in the final
step, the headshot and gallery image references.
"""
from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.session import Base

if TYPE_CHECKING:
    from .review import ClientReview


def utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class Provider(Base):
    """
    Provider profile built up across the portal onboarding steps.

    The image columns stay empty until the profile-content step commits; they
    hold retrievable URLs resolved from storage keys at save time.
    """

    __tablename__ = "providers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Practice information
    provider_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True, index=True)
    practice_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Practitioner qualifications
    specialties: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    board_certifications: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    npi_number: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    hospital_affiliations: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    education_and_training: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)

    # Profile content
    headshot_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    gallery_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    reviews: Mapped[list["ClientReview"]] = relationship(
        "ClientReview",
        back_populates="provider",
        cascade="all, delete-orphan",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Provider(id={self.id}, email='{self.email}')>"

    @property
    def has_profile_images(self) -> bool:
        return bool(self.headshot_url) and bool(self.gallery_url)
