"""Health and readiness endpoints.

  /health (liveness): is the process alive?  Always 200; the body says
    which dependencies are impaired.
  /ready (readiness): can this instance serve traffic?  503 when the
    document store can't be reached, since every request needs it.
    Redis is not checked here.  Cache errors are not caught, so while
    Redis is down leaderboard reads and XP-awarding writes fail with 500.
"""

from __future__ import annotations

from fastapi import APIRouter, Response

from studyquest.api.dependencies import document_store
from studyquest.db.redis import redis_pool
from studyquest.db.store import InMemoryDocumentStore

router = APIRouter(tags=["health"])


async def _store_check() -> str:
    if isinstance(document_store, InMemoryDocumentStore):
        return "memory"
    return "ok" if await document_store.ping() else "degraded"


@router.get("/health")
async def health() -> dict:
    """Liveness probe + dependency status.

    Returns 200 even when degraded.  A 200 with status=degraded means
    "alive but impaired".
    """
    checks: dict[str, str] = {"store": await _store_check()}

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except Exception:
            checks["redis"] = "degraded"
    else:
        checks["redis"] = "not_configured"

    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if not await document_store.ping():
        return Response(status_code=503)
    return Response(status_code=200)
