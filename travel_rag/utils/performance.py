"""
Performance Monitor
Prometheus counters and latency histograms for the retrieval pipeline
"""

import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

from loguru import logger
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)


class PerformanceMonitor:
    """
    Per-service metrics holder.

    Each monitor owns its own CollectorRegistry, so several service
    containers (or tests) can coexist in one process.

    Event names are dotted strings such as "rag.cache_hit",
    "embed.timeout" or "tripadvisor.circuit_open".

    Usage:
        monitor = PerformanceMonitor()
        monitor.increment("rag.cache_hit")
        with monitor.timer("rag.search"):
            ...
        body, content_type = monitor.render()
    """

    def __init__(self, namespace: str = "travel_rag"):
        self.registry = CollectorRegistry()
        self._events = Counter(
            "events_total",
            "Pipeline events by name",
            ["event"],
            namespace=namespace,
            registry=self.registry,
        )
        self._latency = Histogram(
            "operation_seconds",
            "Operation latency",
            ["operation"],
            namespace=namespace,
            registry=self.registry,
        )
        self._counts: Dict[str, float] = {}

    def increment(self, event: str, n: float = 1):
        self._events.labels(event).inc(n)
        self._counts[event] = self._counts.get(event, 0) + n

    def observe(self, operation: str, seconds: float):
        self._latency.labels(operation).observe(seconds)

    @contextmanager
    def timer(self, operation: str) -> Iterator[None]:
        """Time a block and record it under `operation`"""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self.observe(operation, elapsed)
            logger.debug(f"{operation}: {elapsed * 1000:.0f}ms")

    def counter_value(self, event: str) -> float:
        return self._counts.get(event, 0)

    def counters(self) -> Dict[str, float]:
        return dict(self._counts)

    def render(self) -> Tuple[bytes, str]:
        """Prometheus exposition payload and its content type"""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST


def maybe_increment(monitor: Optional[PerformanceMonitor], event: str):
    if monitor is not None:
        monitor.increment(event)
