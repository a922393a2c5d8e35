"""
User Model.

Portal account. A user with role ``provider`` links to the provider record
it owns; users flagged ``is_admin`` receive provider-signup notifications.

Contact info is an embedded value on the account (phone, address,
specialties) and is stored in ``contact_*`` columns.
"""
from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.session import Base
from .enums import UserRole

if TYPE_CHECKING:
    from .provider import Provider


class User(Base):
    """
    Portal user account.

    Attributes:
        id: Primary key
        name: Display name (required)
        email: Unique login email (required)
        password_hash: Hashed password (required)
        role: ``user`` or ``provider``
        provider_id: Optional link to the provider record the user owns
        contact_phone / contact_address / contact_specialties: embedded contact info
        is_premium / premium_expiry: subscription state
        is_admin: Receives onboarding notifications
        created_at: Record creation timestamp
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.USER.value,
        comment="User role: user, provider",
    )
    provider_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("providers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    contact_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    contact_address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    contact_specialties: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    premium_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    provider: Mapped["Provider | None"] = relationship("Provider", lazy="selectin")

    __table_args__ = (
        Index("ix_users_role_admin", "role", "is_admin"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    @property
    def contact_info(self) -> dict[str, Any]:
        return {
            "phone": self.contact_phone,
            "address": self.contact_address,
            "specialties": list(self.contact_specialties or []),
        }
