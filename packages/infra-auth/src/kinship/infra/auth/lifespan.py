"""Auth lifespan hook: builds the codec, resolver and correlation store.

Priority 100 runs after the identity lifespan (90), which publishes the
principal directory on ``app.state``.

Published on ``app.state``:
    token_codec, auth_resolver, password_hasher, correlation_store
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from kinship.foundation.application.contributions import (
    LIFESPAN_PRIORITY_AUTH,
    LifespanContribution,
)
from kinship.infra.auth.bypass import BypassCredential
from kinship.infra.auth.correlation import (
    CorrelationStore,
    InMemoryCorrelationStore,
    RedisCorrelationStore,
    run_sweeper,
)
from kinship.infra.auth.passwords import BcryptPasswordHasher
from kinship.infra.auth.resolver import AuthenticationResolver
from kinship.infra.auth.settings import get_auth_settings
from kinship.infra.auth.token_codec import SessionTokenCodec
from kinship.infra.persistence.redis_client import get_redis_factory

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


async def _build_correlation_store(settings: Any) -> CorrelationStore:
    if settings.correlation_backend == "redis":
        factory = get_redis_factory()
        client = await factory.get_client()
        return RedisCorrelationStore(
            client,
            ttl_seconds=settings.correlation_ttl_seconds,
            key_prefix=factory.settings.key_prefix,
        )
    return InMemoryCorrelationStore(ttl_seconds=settings.correlation_ttl_seconds)


@asynccontextmanager
async def _auth_lifespan(app: Any) -> AsyncIterator[None]:
    """Manage auth resources across the application lifecycle.

    Startup:
        1. Build the session token codec and the bypass matcher.
        2. Build the resolver over ``app.state.principal_directory``.
        3. Build the correlation store; start the sweeper for the in-memory one.

    Shutdown:
        1. Cancel the sweeper task.

    Args:
        app: The application instance.
    """
    settings = get_auth_settings()

    codec = SessionTokenCodec(
        settings.token_secret,
        algorithm=settings.token_algorithm,
        default_ttl=timedelta(seconds=settings.token_ttl_seconds),
    )
    app.state.token_codec = codec
    app.state.password_hasher = BcryptPasswordHasher()

    directory = getattr(app.state, "principal_directory", None)
    if directory is None:
        logger.warning("auth_directory_missing")
        app.state.auth_resolver = None
    else:
        app.state.auth_resolver = AuthenticationResolver(
            codec,
            directory,
            BypassCredential.from_settings(settings),
        )

    store = await _build_correlation_store(settings)
    app.state.correlation_store = store

    sweeper: asyncio.Task[None] | None = None
    if isinstance(store, InMemoryCorrelationStore):
        sweeper = asyncio.create_task(
            run_sweeper(store, settings.correlation_sweep_seconds),
            name="correlation-sweeper",
        )
    logger.info(
        "auth_ready",
        extra={
            "correlation_backend": settings.correlation_backend,
            "bypass_active": settings.bypass_active,
        },
    )

    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        logger.info("auth_shutdown_complete")


lifespan_contribution = LifespanContribution(
    hook=_auth_lifespan,
    priority=LIFESPAN_PRIORITY_AUTH,
)
