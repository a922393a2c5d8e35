"""Provider session marker.

The onboarding steps share one piece of client-side state: the id of the
provider record created by the first step. It is written when that record
is created and removed once the profile-content step commits.

The marker lives in a ``SessionStore`` (``get/set/remove``); the workflow
only ever sees an explicit ``ProviderSession`` handed to it.
"""
from __future__ import annotations

from typing import Protocol

import redis.asyncio as aioredis
import structlog

from ..core.config import Settings, get_settings

logger = structlog.get_logger(__name__)

PROVIDER_ID_KEY = "providerId"


class SessionStore(Protocol):
    """Key/value storage for client-side session state."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...


class InMemorySessionStore:
    """Process-local store; the equivalent of a single browser profile."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class RedisSessionStore:
    """Redis-backed store shared between portal client processes."""

    def __init__(
        self,
        redis_url: str | None = None,
        prefix: str = "portal:",
        client: aioredis.Redis | None = None,
    ) -> None:
        if client is None:
            if not redis_url:
                raise ValueError("redis_url is required when no client is given")
            client = aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)
        self._redis = client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> str | None:
        value = await self._redis.get(self._key(key))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        await self._redis.set(self._key(key), value)

    async def remove(self, key: str) -> None:
        await self._redis.delete(self._key(key))

    async def close(self) -> None:
        await self._redis.aclose()


def create_session_store(settings: Settings | None = None) -> SessionStore:
    """Build the store selected by ``SESSION_STORE``."""
    settings = settings or get_settings()
    if settings.SESSION_STORE == "redis":
        return RedisSessionStore(settings.REDIS_URL, prefix=settings.SESSION_KEY_PREFIX)
    return InMemorySessionStore()


class ProviderSession:
    """Explicit handle on the provider-identity marker."""

    def __init__(self, store: SessionStore, key: str = PROVIDER_ID_KEY) -> None:
        self.store = store
        self.key = key

    async def provider_id(self) -> str | None:
        """Current provider id, or None when no onboarding is in progress."""
        value = await self.store.get(self.key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    async def begin(self, provider_id: str | int) -> None:
        """Record the provider created by the first onboarding step.

        The marker is stored as an opaque string. The portal backend answers
        404 for a marker that names no record, so the commit fails with
        "Provider not found" rather than a validation error.
        """
        await self.store.set(self.key, str(provider_id))
        logger.info("provider_session_started", provider_id=str(provider_id))

    async def clear(self) -> None:
        await self.store.remove(self.key)
        logger.info("provider_session_cleared")
