"""
Lightweight metrics collection for the QSL tracker.
Wraps prometheus_client counters for the acquisition and reconciliation pipeline.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Histogram, start_http_server

from shared.config import Settings, get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
FETCH_ATTEMPTS = Counter(
    "qsl_fetch_attempts_total",
    "Outbound fetch attempts made by the source fetcher",
    ["outcome"],
)
ENTRIES_ACQUIRED = Counter(
    "qsl_entries_acquired_total",
    "Form entries produced by the acquisition chain",
    ["source"],
)
RECONCILE_RUNS = Counter(
    "qsl_reconcile_runs_total",
    "Reconciliation runs by result",
    ["result"],
)
RECORD_TRANSITIONS = Counter(
    "qsl_record_transitions_total",
    "Status record changes applied by reconciliation or manual actions",
    ["kind"],
)
REFRESH_REJECTED = Counter(
    "qsl_refresh_rejected_total",
    "Refresh requests rejected because one was already in flight",
)

# ── Histograms ──────────────────────────────────────────────────────────
RECONCILE_DURATION = Histogram(
    "qsl_reconcile_duration_seconds",
    "Wall time of a full reconciliation run",
    buckets=(0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if labels:
            histogram.labels(**labels).observe(elapsed)
        else:
            histogram.observe(elapsed)


def start_metrics_server(settings: Settings | None = None) -> None:
    """Start the Prometheus metrics HTTP server when enabled."""
    settings = settings or get_settings()
    if not settings.metrics_enabled:
        return
    try:
        start_http_server(settings.metrics_port)
        logger.info("metrics_server_started", port=settings.metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=settings.metrics_port)
