"""Health and readiness endpoints.

  /health (liveness):  "is the process alive?"  Always 200; the body's
    status field reports degraded dependencies without triggering a
    container restart.

  /ready (readiness):  "can this instance take traffic?"  503 when the
    configured database is unreachable, so the load balancer drains the
    instance until it recovers.  With no DATABASE_URL the in-memory
    repositories are always ready.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from watchtime.db import engine as db_engine

router = APIRouter(tags=["health"])


async def _database_status() -> str:
    if db_engine.engine is None:
        return "not_configured"
    return "ok" if await db_engine.ping_database() else "degraded"


@router.get("/health")
async def health() -> dict:
    """Liveness probe + dependency status."""
    database = await _database_status()
    return {
        "status": "degraded" if database == "degraded" else "ok",
        "checks": {"database": database},
    }


@router.get("/ready")
async def ready() -> Response:
    """Readiness probe; 503 while the database is unreachable."""
    if await _database_status() == "degraded":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
