# resilience/__init__.py
"""
Resilience Package

Guards around slow or failing dependencies:
- timeout: deadline without cancellation
- circuit_breaker: consecutive-failure breaker
- rate_limiter: batch-windowed pacing + 429 backoff
- background: detached tasks with an error boundary
"""

from .timeout import with_timeout, is_timeout
from .circuit_breaker import CircuitBreaker
from .rate_limiter import RateLimiter, retry_with_backoff
from .background import BackgroundTasks

__all__ = [
    "with_timeout",
    "is_timeout",
    "CircuitBreaker",
    "RateLimiter",
    "retry_with_backoff",
    "BackgroundTasks",
]
