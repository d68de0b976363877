"""Lazily created async Redis client.

Example:
    >>> from kinship.infra.persistence.redis_client import get_redis_factory
    >>> client = await get_redis_factory().get_client()
    >>> await client.ping()
    True
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import redis.asyncio as aioredis

from kinship.infra.persistence.redis_settings import RedisSettings


class RedisFactory:
    """Owns one pooled ``redis.asyncio`` client.

    The client is created on first use, so importing or constructing the
    factory never opens a connection.
    """

    def __init__(self, settings: RedisSettings) -> None:
        self._settings = settings
        self._client: Any = None

    @classmethod
    def from_env(cls) -> RedisFactory:
        """Create a factory from ``REDIS_*`` environment variables.

        ``REDIS_URL`` is parsed into its parts when present.
        """
        settings = RedisSettings()
        if settings.url:
            settings = RedisSettings.from_url(settings.url)
        return cls(settings)

    @property
    def settings(self) -> RedisSettings:
        return self._settings

    @property
    def connected(self) -> bool:
        """Whether a client has been created."""
        return self._client is not None

    async def get_client(self) -> Any:
        """Get the async client, creating it on first access."""
        if self._client is None:
            s = self._settings
            self._client = aioredis.from_url(  # type: ignore[no-untyped-call]
                s.get_url(),
                max_connections=s.pool_size,
                socket_timeout=s.socket_timeout,
                socket_connect_timeout=s.socket_timeout,
                decode_responses=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the client and release its pool. Safe to call repeatedly."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


@lru_cache(maxsize=1)
def get_redis_factory() -> RedisFactory:
    """Get the cached Redis factory singleton."""
    return RedisFactory.from_env()
