"""Prometheus metric inventory.

All metrics are defined here; the middleware and the services import
the ones they own and increment them at the point of action.

Counters only go up (requests served, chunks ingested).  The gauge
tracks in-flight requests.  The histogram buckets request latency so
Prometheus can compute percentiles with histogram_quantile().
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Chunk ingestion is one short transaction; anything past 500ms is a
    # lock wait on a hot aggregate row or a slow database.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Watch-activity metrics (incremented by the aggregation service)
# ---------------------------------------------------------------------------

WATCH_CHUNKS = Counter(
    "watch_chunks_total",
    "Watch-time chunks committed by chunk ingestion",
)

WATCH_SECONDS = Counter(
    "watch_seconds_total",
    "Seconds of watch time committed by chunk ingestion",
)

SNAPSHOTS = Counter(
    "snapshots_total",
    "Video progress snapshots committed",
    ["completed"],  # "true" or "false" as reported by the client
)

COMPLETION_TRANSITIONS = Counter(
    "completion_transitions_total",
    "False-to-true video completion transitions (completedVideos increments)",
)
