"""
Performance metrics collection for recipe storage calls.
Tracks how long each request spends waiting on the persistence layer.
Uses contextvars for request-scoped state (async-safe).
"""
import logging
import time
from contextvars import ContextVar
from dataclasses import dataclass

from recipebox.services import prometheus_metrics

logger = logging.getLogger(__name__)

# Request-scoped metrics (reset per request)
_request_metrics_var: ContextVar["RequestMetrics | None"] = ContextVar(
    "request_metrics", default=None
)


@dataclass
class RequestMetrics:
    """Storage timings for a single request."""

    query_ms: float = 0.0
    query_count: int = 0


def start_request_metrics() -> RequestMetrics:
    """Start tracking metrics for a new request. Called by the metrics middleware."""
    m = RequestMetrics()
    _request_metrics_var.set(m)
    return m


def record_query(elapsed_ms: float) -> None:
    """Record a storage call duration."""
    m = _request_metrics_var.get()
    if m is not None:
        m.query_ms += elapsed_ms
        m.query_count += 1


def timed_query(operation: str) -> "_TimedContext":
    """Context manager to time a storage call and record it."""
    return _TimedContext(operation)


class _TimedContext:
    """Context manager that measures elapsed time and records to metrics."""

    def __init__(self, operation: str) -> None:
        self._operation = operation
        self._start: float = 0.0

    def __enter__(self) -> "_TimedContext":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: object) -> None:
        elapsed = time.perf_counter() - self._start
        record_query(elapsed * 1000)
        prometheus_metrics.record_persistence_duration(self._operation, elapsed)


@dataclass
class AggregateMetrics:
    """Aggregate storage metrics across all requests (for /api/metrics endpoint)."""

    request_count: int = 0
    query_count: int = 0
    query_total_ms: float = 0.0

    def record(self, query_ms: float, query_count: int) -> None:
        if query_count <= 0:
            return
        self.request_count += 1
        self.query_count += query_count
        self.query_total_ms += query_ms
        logger.debug(
            "Request metrics: queries=%d storage=%.2fms", query_count, query_ms
        )

    def reset(self) -> None:
        self.request_count = 0
        self.query_count = 0
        self.query_total_ms = 0.0

    def to_dict(self) -> dict:
        return {
            "requests": self.request_count,
            "queries": self.query_count,
            "total_ms": round(self.query_total_ms, 2),
            "avg_ms_per_query": round(self.query_total_ms / self.query_count, 2)
            if self.query_count > 0
            else 0,
        }


aggregate_metrics = AggregateMetrics()
