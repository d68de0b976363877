"""Lifespan composition for the kinship app factory.

Composes :class:`~kinship.foundation.application.LifespanContribution`
hooks into a single FastAPI-compatible lifespan context manager.
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from fastapi import FastAPI

    from kinship.foundation.application import LifespanContribution

logger = logging.getLogger(__name__)


def compose_lifespan(
    hooks: list[LifespanContribution],
) -> Callable[[FastAPI], Any]:
    """Create a composite lifespan from ordered hooks.

    Hooks are sorted by priority (ascending). Lower priority hooks start first
    and shut down last, so the directory published by the identity hook (90)
    is in place before the auth hook (100) builds the resolver over it.

    Args:
        hooks: LifespanContribution instances.

    Returns:
        An async context manager factory suitable for FastAPI's ``lifespan`` parameter.
    """
    sorted_hooks = sorted(hooks, key=lambda h: h.priority)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for contribution in sorted_hooks:
                logger.info(
                    "lifespan_hook_entered",
                    extra={
                        "priority": contribution.priority,
                        "hook": getattr(contribution.hook, "__qualname__", repr(contribution.hook)),
                    },
                )
                await stack.enter_async_context(contribution.hook(app))
            yield

    return lifespan
