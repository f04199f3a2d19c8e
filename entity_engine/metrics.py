"""
Prometheus metrics for the snapshot engine.

Helpers are no-ops until init_metrics() has run, so library users who do not
want metrics pay nothing.

Usage:
    from entity_engine.metrics import start_metrics_server

    start_metrics_server(enabled=True, port=8080)
    # curl http://localhost:8080/metrics
"""

import logging
import threading
from contextlib import contextmanager
from typing import Generator, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, REGISTRY, start_http_server

logger = logging.getLogger(__name__)

EVENTS_FOLDED: Optional[Counter] = None
SNAPSHOTS_STORED: Optional[Counter] = None
FOLD_FAILURES: Optional[Counter] = None
FOLD_DURATION: Optional[Histogram] = None

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics(registry: CollectorRegistry = REGISTRY) -> None:
    """
    Initialize Prometheus metrics (call once at startup).

    Thread-safe via module-level lock; later calls are no-ops.
    """
    global EVENTS_FOLDED, SNAPSHOTS_STORED, FOLD_FAILURES, FOLD_DURATION
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        EVENTS_FOLDED = Counter(
            "entity_engine_events_folded_total",
            "Total number of events folded into snapshots",
            labelnames=["entity_type"],
            registry=registry,
        )

        SNAPSHOTS_STORED = Counter(
            "entity_engine_snapshots_stored_total",
            "Total number of snapshots persisted",
            labelnames=["entity_type"],
            registry=registry,
        )

        # reason: missing_reducer, execution
        FOLD_FAILURES = Counter(
            "entity_engine_fold_failures_total",
            "Total number of aborted folds",
            labelnames=["entity_type", "reason"],
            registry=registry,
        )

        # operation: fetch, store
        FOLD_DURATION = Histogram(
            "entity_engine_fold_duration_seconds",
            "Duration of snapshot fetch/store operations in seconds",
            labelnames=["operation"],
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
            registry=registry,
        )

        _metrics_initialized = True
        logger.info("Prometheus metrics initialized")


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Start Prometheus metrics HTTP server in a background thread.

    Initializes metrics if not already initialized.
    """
    if not enabled:
        logger.info("Metrics server disabled (METRICS_ENABLED=false)")
        return

    init_metrics()
    start_http_server(port, addr="0.0.0.0")
    logger.info("Metrics server started on http://0.0.0.0:%d/metrics", port)


@contextmanager
def track_duration(operation: str) -> Generator[None, None, None]:
    if FOLD_DURATION is None:
        yield
        return

    with FOLD_DURATION.labels(operation=operation).time():
        yield


def track_folded(entity_type: str, count: int = 1) -> None:
    if EVENTS_FOLDED is not None and count:
        EVENTS_FOLDED.labels(entity_type=entity_type).inc(count)


def track_stored(entity_type: str) -> None:
    if SNAPSHOTS_STORED is not None:
        SNAPSHOTS_STORED.labels(entity_type=entity_type).inc()


def track_failure(entity_type: str, reason: str) -> None:
    if FOLD_FAILURES is not None:
        FOLD_FAILURES.labels(entity_type=entity_type, reason=reason).inc()
