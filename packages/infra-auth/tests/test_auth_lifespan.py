"""Tests for the auth lifespan hook."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from kinship.infra.auth.correlation import InMemoryCorrelationStore, RedisCorrelationStore
from kinship.infra.auth.lifespan import _auth_lifespan, lifespan_contribution
from kinship.infra.auth.passwords import BcryptPasswordHasher
from kinship.infra.auth.resolver import AuthenticationResolver
from kinship.infra.auth.settings import AuthSettings
from kinship.infra.auth.token_codec import SessionTokenCodec


def _app(**state: object) -> SimpleNamespace:
    return SimpleNamespace(state=SimpleNamespace(**state))


def _settings(**overrides: object) -> AuthSettings:
    return AuthSettings(_env_file=None, environment="test", **overrides)  # type: ignore[arg-type]


@pytest.mark.unit
class TestAuthLifespan:
    """Objects published on app.state."""

    @pytest.mark.asyncio
    async def test_publishes_codec_resolver_and_store(self) -> None:
        app = _app(principal_directory=MagicMock())
        with patch("kinship.infra.auth.lifespan.get_auth_settings", return_value=_settings()):
            async with _auth_lifespan(app):
                assert isinstance(app.state.token_codec, SessionTokenCodec)
                assert isinstance(app.state.auth_resolver, AuthenticationResolver)
                assert isinstance(app.state.password_hasher, BcryptPasswordHasher)
                assert isinstance(app.state.correlation_store, InMemoryCorrelationStore)

    @pytest.mark.asyncio
    async def test_missing_directory_leaves_resolver_unset(self) -> None:
        app = _app()
        with patch("kinship.infra.auth.lifespan.get_auth_settings", return_value=_settings()):
            async with _auth_lifespan(app):
                assert app.state.auth_resolver is None

    @pytest.mark.asyncio
    async def test_redis_backend(self) -> None:
        app = _app(principal_directory=MagicMock())
        factory = MagicMock()
        factory.get_client = AsyncMock(return_value=MagicMock())
        factory.settings.key_prefix = "kinship:"
        with (
            patch(
                "kinship.infra.auth.lifespan.get_auth_settings",
                return_value=_settings(correlation_backend="redis"),
            ),
            patch("kinship.infra.auth.lifespan.get_redis_factory", return_value=factory),
        ):
            async with _auth_lifespan(app):
                assert isinstance(app.state.correlation_store, RedisCorrelationStore)
        factory.get_client.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sweeper_cancelled_on_shutdown(self) -> None:
        app = _app(principal_directory=MagicMock())
        with (
            patch("kinship.infra.auth.lifespan.get_auth_settings", return_value=_settings()),
            patch("kinship.infra.auth.lifespan.run_sweeper") as run_sweeper,
        ):
            started = AsyncMock()
            run_sweeper.side_effect = lambda store, interval: started(store, interval)
            async with _auth_lifespan(app):
                pass
        run_sweeper.assert_called_once()
        assert run_sweeper.call_args.args[1] == 60

    def test_contribution_priority(self) -> None:
        assert lifespan_contribution.priority == 100
