"""Correlation stores for multi-step external sign-in.

Between "start" and "complete" of an external identity flow the server
keeps only the target tenant routing key and the post-auth redirect,
keyed by an unguessable correlation id. Entries are single-use and
time-boxed (default 600 seconds).

Two implementations:

``InMemoryCorrelationStore``
    A lock-protected dict for single-process deployments. Expired entries
    are removed by ``sweep``, which the auth lifespan runs periodically.

``RedisCorrelationStore``
    Shared across processes. ``SET ... EX`` on put and atomic ``GETDEL``
    on consume, so an entry can be consumed exactly once.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
import threading
import time
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600
DEFAULT_REDIRECT = "/dashboard"


@dataclass(frozen=True, slots=True)
class PendingFlow:
    """State carried between the start and completion of an external sign-in.

    Attributes:
        provider: External provider name.
        tenant_domain: Routing key of the tenant a new principal would join.
        redirect: Where to send the user after sign-in.
    """

    provider: str
    tenant_domain: str | None = None
    redirect: str = DEFAULT_REDIRECT


def new_correlation_key() -> str:
    """Unguessable correlation id (256 bits)."""
    return secrets.token_urlsafe(32)


class CorrelationStore(Protocol):
    """Single-use, time-boxed storage for PendingFlow entries."""

    async def put(self, flow: PendingFlow) -> str:
        """Store ``flow`` and return its correlation key."""
        ...

    async def consume(self, key: str) -> PendingFlow | None:
        """Remove and return the entry, or None if unknown or expired."""
        ...

    async def sweep(self) -> int:
        """Drop expired entries and return how many were removed."""
        ...


class InMemoryCorrelationStore:
    """Process-local correlation store.

    Args:
        ttl_seconds: Lifetime of an entry.
        clock: Monotonic time source, for tests.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, PendingFlow]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    async def put(self, flow: PendingFlow) -> str:
        key = new_correlation_key()
        with self._lock:
            self._entries[key] = (self._clock() + self._ttl, flow)
        logger.debug("correlation_stored", extra={"key_prefix": key[:8]})
        return key

    async def consume(self, key: str) -> PendingFlow | None:
        with self._lock:
            entry = self._entries.pop(key, None)
        if entry is None:
            return None
        expires_at, flow = entry
        if expires_at <= self._clock():
            logger.debug("correlation_expired", extra={"key_prefix": key[:8]})
            return None
        return flow

    async def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)


class RedisCorrelationStore:
    """Redis-backed correlation store with single-use semantics.

    Keys use the format ``{prefix}correlation:{key}``. Values are
    JSON-encoded PendingFlow fields. Redis expires abandoned entries.

    Args:
        redis_client: Async Redis client created with ``decode_responses=True``.
        ttl_seconds: Lifetime of an entry.
        key_prefix: Namespace for every key.
    """

    def __init__(
        self,
        redis_client: Any,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        key_prefix: str = "kinship:",
    ) -> None:
        self._redis = redis_client
        self._ttl = ttl_seconds
        self._prefix = f"{key_prefix}correlation:"

    async def put(self, flow: PendingFlow) -> str:
        key = new_correlation_key()
        await self._redis.set(self._prefix + key, json.dumps(asdict(flow)), ex=self._ttl)
        logger.debug("correlation_stored", extra={"key_prefix": key[:8]})
        return key

    async def consume(self, key: str) -> PendingFlow | None:
        raw = await self._redis.getdel(self._prefix + key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return PendingFlow(
                provider=data["provider"],
                tenant_domain=data.get("tenant_domain"),
                redirect=data.get("redirect") or DEFAULT_REDIRECT,
            )
        except (json.JSONDecodeError, KeyError, TypeError):
            logger.warning("correlation_corrupt", extra={"key_prefix": key[:8]})
            return None

    async def sweep(self) -> int:
        return 0


async def run_sweeper(store: CorrelationStore, interval_seconds: float) -> None:
    """Sweep ``store`` every ``interval_seconds`` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        removed = await store.sweep()
        if removed:
            logger.debug("correlation_swept", extra={"removed": removed})
