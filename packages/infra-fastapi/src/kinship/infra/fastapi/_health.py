"""Aggregated health check endpoint.

Reports per-subsystem health for the database and, when a Redis client
has been opened (Redis correlation backend), for Redis.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.concurrency import run_in_threadpool

from kinship.infra.persistence.database import get_engine
from kinship.infra.persistence.redis_client import get_redis_factory

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


def _ping_database() -> None:
    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))


async def _check_database() -> dict[str, str]:
    """Check database connectivity via SELECT 1."""
    try:
        await run_in_threadpool(_ping_database)
    except Exception as exc:
        logger.warning("health_check_database_unhealthy", extra={"error": str(exc)})
        return {"status": "error", "detail": type(exc).__name__}
    return {"status": "ok"}


async def _check_redis() -> dict[str, str]:
    """Check Redis connectivity via PING."""
    try:
        client = await get_redis_factory().get_client()
        await client.ping()
    except Exception as exc:
        logger.warning("health_check_redis_unhealthy", extra={"error": str(exc)})
        return {"status": "error", "detail": type(exc).__name__}
    return {"status": "ok"}


@router.get("/healthz")
async def healthz() -> Any:
    """Aggregated health check endpoint.

    Returns HTTP 200 when every checked subsystem is healthy, HTTP 503
    otherwise. Reachable without a credential.
    """
    checks: dict[str, dict[str, str]] = {"database": await _check_database()}
    if get_redis_factory().connected:
        checks["redis"] = await _check_redis()

    all_ok = all(c["status"] == "ok" for c in checks.values())
    return JSONResponse(
        content={"status": "ok" if all_ok else "degraded", "checks": checks},
        status_code=200 if all_ok else 503,
    )
