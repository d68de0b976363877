"""Application assembly from installed kinship packages.

Each package advertises what it adds to the HTTP app through entry points:

=========================  ==========================================
Group                      Value
=========================  ==========================================
``kinship.lifespan``       ``LifespanContribution`` (or a bare hook)
``kinship.middleware``     ``MiddlewareContribution``
``kinship.error_handlers`` ``ErrorHandlerContribution`` or ``register(app)``
``kinship.routers``        ``APIRouter``
=========================  ==========================================

Installing a package is enough to wire it in. Tests and deployments narrow
the result with ``exclude_groups`` / ``exclude_names`` instead of editing code.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, FastAPI
from starlette.middleware.cors import CORSMiddleware

from kinship.foundation.application import (
    ErrorHandlerContribution,
    LifespanContribution,
    MiddlewareContribution,
    discover,
)
from kinship.infra.fastapi.lifespan import compose_lifespan
from kinship.infra.fastapi.settings import AppSettings

if TYPE_CHECKING:
    from collections.abc import Iterator

    from kinship.infra.fastapi.settings import CORSSettings

logger = logging.getLogger(__name__)

GROUP_ROUTERS = "kinship.routers"
GROUP_MIDDLEWARE = "kinship.middleware"
GROUP_ERROR_HANDLERS = "kinship.error_handlers"
GROUP_LIFESPAN = "kinship.lifespan"

ALL_GROUPS = frozenset({GROUP_ROUTERS, GROUP_MIDDLEWARE, GROUP_ERROR_HANDLERS, GROUP_LIFESPAN})


class _Discovery:
    """Entry-point lookups filtered by the caller's exclusions."""

    def __init__(self, exclude_groups: frozenset[str], exclude_names: frozenset[str]) -> None:
        self._exclude_groups = exclude_groups
        self._exclude_names = exclude_names

    def values(self, group: str) -> Iterator[tuple[str, Any]]:
        if group in self._exclude_groups:
            logger.info("discovery_group_excluded", extra={"group": group})
            return
        for contrib in discover(group, exclude_names=self._exclude_names):
            yield contrib.name, contrib.value


def create_app(
    settings: AppSettings | None = None,
    *,
    extra_routers: list[APIRouter] | None = None,
    extra_middleware: list[MiddlewareContribution] | None = None,
    extra_lifespan_hooks: list[LifespanContribution] | None = None,
    extra_error_handlers: list[ErrorHandlerContribution] | None = None,
    exclude_groups: frozenset[str] | None = None,
    exclude_names: frozenset[str] | None = None,
) -> FastAPI:
    """Build the kinship HTTP application.

    Args:
        settings: Application settings. Loaded from the environment when ``None``.
        extra_routers: Routers included after the discovered ones.
        extra_middleware: Middleware merged with the discovered ones by priority.
        extra_lifespan_hooks: Lifespan hooks merged with the discovered ones by priority.
        extra_error_handlers: Handlers registered before the discovered ones.
        exclude_groups: Entry-point groups to skip. Defaults to
            ``settings.exclude_groups``.
        exclude_names: Entry-point names to skip in every group. Defaults to
            ``settings.exclude_entry_points``.

    Returns:
        The configured application. Lifespan hooks run when it starts serving.
    """
    settings = settings or AppSettings()
    discovery = _Discovery(
        exclude_groups if exclude_groups is not None else settings.exclude_groups,
        exclude_names if exclude_names is not None else settings.exclude_entry_points,
    )

    app = FastAPI(
        title=settings.title,
        version=settings.version,
        description=settings.description,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        debug=settings.debug,
        lifespan=compose_lifespan(_lifespan_hooks(discovery, extra_lifespan_hooks)),
    )
    _install_cors(app, settings.cors)
    _install_middleware(app, discovery, extra_middleware)
    _install_error_handlers(app, discovery, extra_error_handlers)
    _include_routers(app, discovery, extra_routers)
    return app


def _lifespan_hooks(
    discovery: _Discovery,
    extra: list[LifespanContribution] | None,
) -> list[LifespanContribution]:
    hooks = list(extra or [])
    for _name, value in discovery.values(GROUP_LIFESPAN):
        if not isinstance(value, LifespanContribution):
            value = LifespanContribution(hook=value)
        hooks.append(value)
    return hooks


def _install_cors(app: FastAPI, cors: CORSSettings) -> None:
    # Added first, so it sits innermost: discovered middleware wraps it.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.allow_origins,
        allow_credentials=cors.allow_credentials,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
        expose_headers=cors.expose_headers,
    )


def _install_middleware(
    app: FastAPI,
    discovery: _Discovery,
    extra: list[MiddlewareContribution] | None,
) -> None:
    """Add middleware so that the lowest priority runs first on a request."""
    contributions = list(extra or [])
    for name, value in discovery.values(GROUP_MIDDLEWARE):
        if not isinstance(value, MiddlewareContribution):
            logger.warning("middleware_entry_point_ignored", extra={"entry_point": name})
            continue
        contributions.append(value)

    # Starlette wraps in reverse order of add_middleware calls.
    for contribution in sorted(contributions, key=lambda c: c.priority, reverse=True):
        app.add_middleware(contribution.middleware_class, **contribution.kwargs)

    logger.info(
        "middleware_stack",
        extra={
            "order": [
                f"{c.middleware_class.__name__}:{c.priority}"
                for c in sorted(contributions, key=lambda c: c.priority)
            ]
        },
    )


def _install_error_handlers(
    app: FastAPI,
    discovery: _Discovery,
    extra: list[ErrorHandlerContribution] | None,
) -> None:
    handlers = list(extra or [])
    for name, value in discovery.values(GROUP_ERROR_HANDLERS):
        if isinstance(value, ErrorHandlerContribution):
            handlers.append(value)
        elif callable(value):
            value(app)
            logger.info("error_handlers_registered", extra={"entry_point": name})
        else:
            logger.warning("error_handler_entry_point_ignored", extra={"entry_point": name})

    for handler in handlers:
        app.add_exception_handler(handler.exception_class, handler.handler)
        logger.info(
            "error_handler_registered",
            extra={"exception": handler.exception_class.__name__},
        )


def _include_routers(
    app: FastAPI,
    discovery: _Discovery,
    extra: list[APIRouter] | None,
) -> None:
    routers = list(extra or [])
    for name, value in discovery.values(GROUP_ROUTERS):
        if not isinstance(value, APIRouter):
            logger.warning("router_entry_point_ignored", extra={"entry_point": name})
            continue
        routers.append(value)

    for router in routers:
        app.include_router(router)
        logger.info("router_included", extra={"prefix": router.prefix or "/"})
