"""Prometheus metrics for the API cache layer.

Labels stay low-cardinality. Endpoint keys never become label values.
"""

from __future__ import annotations

from typing import Literal

from prometheus_client import Counter, Histogram

CacheState = Literal["hit", "miss"]
CacheFreshness = Literal["fresh", "stale"]
FetchPath = Literal["foreground", "background", "prefetch"]
FetchOutcome = Literal["success", "error", "skipped", "joined", "cancelled", "superseded"]

CACHE_READS_TOTAL = Counter(
    "leaddesk_cache_reads_total",
    "Cached-query mounts by cache state and freshness.",
    labelnames=("state", "freshness"),
)

CACHE_FETCHES_TOTAL = Counter(
    "leaddesk_cache_fetches_total",
    "Cache fills by path (foreground/background/prefetch) and outcome.",
    labelnames=("path", "outcome"),
)

API_REQUEST_DURATION_SECONDS = Histogram(
    "leaddesk_api_request_duration_seconds",
    "Backend GET latency in seconds by outcome.",
    labelnames=("outcome",),
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


def record_cache_read(*, state: CacheState, freshness: CacheFreshness) -> None:
    CACHE_READS_TOTAL.labels(state=state, freshness=freshness).inc()


def record_fetch(*, path: FetchPath, outcome: FetchOutcome) -> None:
    CACHE_FETCHES_TOTAL.labels(path=path, outcome=outcome).inc()


def observe_request(*, outcome: str, duration_seconds: float) -> None:
    API_REQUEST_DURATION_SECONDS.labels(outcome=outcome).observe(max(0.0, float(duration_seconds)))


__all__ = [
    "API_REQUEST_DURATION_SECONDS",
    "CACHE_FETCHES_TOTAL",
    "CACHE_READS_TOTAL",
    "observe_request",
    "record_cache_read",
    "record_fetch",
]
