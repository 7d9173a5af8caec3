"""
Rate Limiter
Batch-windowed request pacing for third-party APIs
"""

import asyncio
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Optional, Tuple

import httpx
from loguru import logger


class RateLimiter:
    """
    FIFO batch-windowed rate limiter.

    A pump takes up to `max_requests` queued calls, starts them together,
    waits for all of them, then sleeps `window_ms` before the next batch.
    When the pump restarts after going idle it only uses the capacity the
    last window has left: calls started less than `window_ms` ago still
    count against `max_requests`.

    Usage:
        limiter = RateLimiter(max_requests=3, window_ms=1000)
        details = await limiter.schedule(lambda: client.get(url))
    """

    def __init__(
        self,
        max_requests: int = 3,
        window_ms: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock
        self._queue: Deque[Tuple[Callable[[], Awaitable[Any]], asyncio.Future]] = deque()
        self._pump_task: Optional[asyncio.Task] = None
        self._recent_starts: Deque[float] = deque()

    @property
    def pending(self) -> int:
        return len(self._queue)

    async def schedule(self, fn: Callable[[], Awaitable[Any]]) -> Any:
        """
        Queue a call and wait for its result.

        Args:
            fn: Zero-argument callable returning an awaitable

        Returns:
            Whatever the call returns; its exception is re-raised here
        """
        future = asyncio.get_running_loop().create_future()
        self._queue.append((fn, future))
        if self._pump_task is None or self._pump_task.done():
            self._pump_task = asyncio.create_task(self._pump())
        return await future

    async def _pump(self):
        window = self.window_ms / 1000.0
        while self._queue:
            capacity = self._capacity(window)
            if capacity == 0:
                await asyncio.sleep(self._recent_starts[0] + window - self._clock())
                continue

            batch = []
            while self._queue and len(batch) < capacity:
                fn, future = self._queue.popleft()
                if future.done():
                    # caller gave up while queued
                    continue
                batch.append((fn, future))
            if not batch:
                continue

            started = self._clock()
            self._recent_starts.extend([started] * len(batch))
            logger.debug(f"RateLimiter dispatching {len(batch)} call(s), {len(self._queue)} queued")
            await asyncio.gather(*(self._run(fn, future) for fn, future in batch))

            if self._queue:
                await asyncio.sleep(window)

    def _capacity(self, window: float) -> int:
        """Calls that may start now without exceeding max_requests in the last window"""
        now = self._clock()
        while self._recent_starts and now - self._recent_starts[0] >= window:
            self._recent_starts.popleft()
        return self.max_requests - len(self._recent_starts)

    @staticmethod
    async def _run(fn: Callable[[], Awaitable[Any]], future: asyncio.Future):
        try:
            result = await fn()
        except Exception as e:
            if not future.done():
                future.set_exception(e)
        else:
            if not future.done():
                future.set_result(result)


async def retry_with_backoff(
    fn: Callable[[], Awaitable[Any]],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """
    Retry a call that was rate limited by the remote API.

    Only HTTP 429 responses are retried; the `Retry-After` header (seconds)
    wins over exponential backoff. Any other error is raised immediately.

    Args:
        fn: Zero-argument callable returning an awaitable
        max_retries: Total attempts
        initial_delay: First backoff delay in seconds
        sleep: Sleep function (overridable in tests)

    Returns:
        The call's result
    """
    last_error: Optional[Exception] = None
    for attempt in range(max_retries):
        try:
            return await fn()
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 429:
                raise
            last_error = e
            if attempt == max_retries - 1:
                break
            retry_after = e.response.headers.get("retry-after")
            try:
                delay = float(retry_after) if retry_after else initial_delay * (2 ** attempt)
            except ValueError:
                delay = initial_delay * (2 ** attempt)
            logger.warning(f"Rate limited. Retrying after {delay:.1f}s (attempt {attempt + 1}/{max_retries})")
            await sleep(delay)
    raise last_error
