"""
Circuit Breaker
Stops calling a failing dependency for a cooldown period
"""

import time
from typing import Any, Callable, Dict, Optional
from loguru import logger


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    Features:
    - Opens after `failure_threshold` failures with no success in between
    - Stays open for `reset_timeout_ms`; afterwards the next caller may try
    - Any success closes the circuit and clears the failure count
    - A failed trial call reopens the window for a full `reset_timeout_ms`

    Usage:
        breaker = CircuitBreaker("tripadvisor", failure_threshold=3)
        if not breaker.is_open():
            try:
                result = await call()
                breaker.record_success()
            except Exception:
                breaker.record_failure()
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        reset_timeout_ms: int = 60000,
        on_open: Optional[Callable[["CircuitBreaker"], Any]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout_ms = reset_timeout_ms
        self.failure_count = 0
        self.open_until = 0.0
        self._on_open = on_open
        self._clock = clock

    def is_open(self) -> bool:
        return self._clock() < self.open_until

    def record_failure(self):
        self.failure_count += 1
        if self.failure_count >= self.failure_threshold:
            self.open_until = self._clock() + self.reset_timeout_ms / 1000.0
            logger.warning(
                f"Circuit '{self.name}' opened after {self.failure_count} failures "
                f"for {self.reset_timeout_ms}ms"
            )
            if self._on_open:
                self._on_open(self)

    def record_success(self):
        if self.failure_count or self.open_until:
            logger.info(f"Circuit '{self.name}' closed")
        self.failure_count = 0
        self.open_until = 0.0

    def retry_in_ms(self) -> float:
        """Milliseconds until the open window elapses (0 when closed)"""
        return max(0.0, (self.open_until - self._clock()) * 1000.0)

    def snapshot(self) -> Dict[str, Any]:
        """State summary for health reporting"""
        return {
            "name": self.name,
            "state": "open" if self.is_open() else "closed",
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "retry_in_ms": round(self.retry_in_ms()),
        }
