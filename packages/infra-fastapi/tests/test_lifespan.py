"""Unit tests for kinship.infra.fastapi.lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest

from kinship.foundation.application.contributions import LifespanContribution
from kinship.infra.fastapi.lifespan import compose_lifespan

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


def _recording_hook(name: str, order: list[str]) -> Any:
    @asynccontextmanager
    async def hook(app: object) -> AsyncIterator[None]:
        order.append(f"{name}_start")
        yield
        order.append(f"{name}_stop")

    return hook


class TestComposeLifespan:
    @pytest.mark.unit
    @pytest.mark.asyncio(loop_scope="function")
    async def test_empty_hooks(self) -> None:
        async with compose_lifespan([])(MagicMock()):
            pass

    @pytest.mark.unit
    @pytest.mark.asyncio(loop_scope="function")
    async def test_directory_starts_before_auth(self) -> None:
        """The identity hook (90) publishes the directory the auth hook (100) needs."""
        order: list[str] = []
        hooks = [
            LifespanContribution(hook=_recording_hook("auth", order), priority=100),
            LifespanContribution(hook=_recording_hook("logging", order), priority=50),
            LifespanContribution(hook=_recording_hook("identity", order), priority=90),
        ]

        async with compose_lifespan(hooks)(MagicMock()):
            assert order == ["logging_start", "identity_start", "auth_start"]

        assert order[3:] == ["auth_stop", "identity_stop", "logging_stop"]

    @pytest.mark.unit
    @pytest.mark.asyncio(loop_scope="function")
    async def test_failed_startup_unwinds_started_hooks(self) -> None:
        order: list[str] = []

        @asynccontextmanager
        async def broken(app: object) -> AsyncIterator[None]:
            raise RuntimeError("database unreachable")
            yield  # pragma: no cover

        hooks = [
            LifespanContribution(hook=_recording_hook("logging", order), priority=50),
            LifespanContribution(hook=broken, priority=75),
        ]
        with pytest.raises(RuntimeError, match="database unreachable"):
            async with compose_lifespan(hooks)(MagicMock()):
                pass  # pragma: no cover

        assert order == ["logging_start", "logging_stop"]

    @pytest.mark.unit
    @pytest.mark.asyncio(loop_scope="function")
    async def test_app_is_passed_to_hooks(self) -> None:
        received: list[object] = []

        @asynccontextmanager
        async def hook(app: object) -> AsyncIterator[None]:
            received.append(app)
            yield

        app = MagicMock()
        async with compose_lifespan([LifespanContribution(hook=hook)])(app):
            assert received == [app]
