"""Prometheus scrape endpoint.

Returns the text exposition format (not JSON).  Besides the HTTP
series it carries the watch-activity counters from core/metrics.py.
Restrict it to the Prometheus server at the network layer in
production; it is not authenticated.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
