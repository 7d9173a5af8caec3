"""
Background Tasks
Detached coroutines with their own error boundary
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Set
from loguru import logger


class BackgroundTasks:
    """
    Spawns fire-and-forget work on the running loop.

    Tasks are strongly referenced until they finish; a failure is logged
    at the task boundary and never reaches the caller that spawned it.
    Keyed spawns are deduplicated: while a task for a key is running,
    spawning the same key again returns the running task.

    Usage:
        tasks = BackgroundTasks(on_error=lambda name, e: monitor.increment("bg.error"))
        tasks.spawn(revalidate(), name="revalidate:rag:search:v1:...", key=cache_key)
        await tasks.drain()  # at shutdown
    """

    def __init__(self, on_error: Optional[Callable[[str, BaseException], Any]] = None):
        self._tasks: Set[asyncio.Task] = set()
        self._keyed: Dict[str, asyncio.Task] = {}
        self._on_error = on_error

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        coro: Awaitable[Any],
        name: str = "background",
        key: Optional[str] = None,
    ) -> asyncio.Task:
        if key is not None:
            running = self._keyed.get(key)
            if running is not None and not running.done():
                # close the unused coroutine so it is not reported as never awaited
                if asyncio.iscoroutine(coro):
                    coro.close()
                return running

        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        if key is not None:
            self._keyed[key] = task
        task.add_done_callback(lambda t: self._finished(t, name, key))
        return task

    def _finished(self, task: asyncio.Task, name: str, key: Optional[str]):
        self._tasks.discard(task)
        if key is not None and self._keyed.get(key) is task:
            del self._keyed[key]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"Background task '{name}' failed: {exc}")
            if self._on_error:
                self._on_error(name, exc)

    def is_running(self, key: str) -> bool:
        task = self._keyed.get(key)
        return task is not None and not task.done()

    async def drain(self):
        """Wait until every spawned task (including ones spawned meanwhile) finished"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self):
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
