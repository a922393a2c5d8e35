"""Provider Repository - Data access layer for provider records."""
from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ProviderAlreadyExistsError, ProviderNotFoundError
from ..models.provider import Provider
from ..schemas.provider import ProviderCreate

log = structlog.get_logger(__name__)


class ProviderRepository:
    """Repository for Provider CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    @staticmethod
    def _parse_id(provider_id: int | str) -> int | None:
        """Record ids are positive integers; anything else matches no provider."""
        try:
            value = int(provider_id)
        except (TypeError, ValueError):
            return None
        return value if value > 0 else None

    async def get_by_id(self, provider_id: int | str) -> Provider | None:
        pk = self._parse_id(provider_id)
        if pk is None:
            return None
        query = select(Provider).where(Provider.id == pk)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_or_raise(self, provider_id: int | str) -> Provider:
        """Get provider by ID or raise ProviderNotFoundError."""
        provider = await self.get_by_id(provider_id)
        if provider is None:
            raise ProviderNotFoundError(provider_id=provider_id)
        return provider

    async def get_by_email(self, email: str) -> Provider | None:
        query = select(Provider).where(Provider.email == email.strip().lower())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def create(self, data: ProviderCreate) -> Provider:
        """Create a provider record; email must be unique when given."""
        if data.email and await self.get_by_email(data.email):
            raise ProviderAlreadyExistsError(email=data.email)

        provider = Provider(**data.model_dump())
        self.session.add(provider)
        await self.session.commit()
        await self.session.refresh(provider)

        log.info("provider_created", provider_id=provider.id)
        return provider

    async def update_images(
        self,
        provider_id: int | str,
        *,
        headshot_url: str,
        gallery_url: str,
    ) -> Provider:
        """Attach the headshot and gallery references to a provider."""
        provider = await self.get_or_raise(provider_id)
        provider.headshot_url = headshot_url
        provider.gallery_url = gallery_url
        await self.session.commit()
        await self.session.refresh(provider)

        log.info("provider_images_saved", provider_id=provider.id)
        return provider
