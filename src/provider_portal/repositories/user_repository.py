"""User Repository - Data access layer for portal accounts."""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.enums import UserRole
from ..models.user import User

log = structlog.get_logger(__name__)


class UserRepository:
    """Repository for User lookups used by the onboarding flow."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_email(self, email: str) -> User | None:
        query = select(User).where(User.email == email.strip().lower())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_admins(self) -> Sequence[User]:
        query = select(User).where(User.is_admin.is_(True)).order_by(User.id.asc())
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_admin_emails(self) -> list[str]:
        """Email addresses of every admin account, lower-cased and de-duplicated."""
        seen: dict[str, None] = {}
        for user in await self.get_admins():
            if user.email:
                seen.setdefault(user.email.lower(), None)
        return list(seen)

    async def create(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.USER,
        provider_id: int | None = None,
        is_admin: bool = False,
    ) -> User:
        user = User(
            name=name,
            email=email.strip().lower(),
            password_hash=password_hash,
            role=role.value,
            provider_id=provider_id,
            is_admin=is_admin,
        )
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)

        log.info("user_created", user_id=user.id, role=user.role)
        return user
