"""Prometheus scrape endpoint.

Returns plain text in Prometheus exposition format, e.g.:

  # TYPE quiz_submissions_total counter
  quiz_submissions_total{outcome="created"} 42.0
  quiz_submissions_total{outcome="replayed"} 3.0
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
