"""
Timeout Guard
Races an awaitable against a deadline without cancelling it
"""

import asyncio
from typing import Any, Awaitable, TypeVar
from loguru import logger

from ..errors import OperationTimeoutError

T = TypeVar("T")


def _consume_abandoned(label: str):
    def _callback(task: asyncio.Future):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug(f"{label} settled after its deadline with error: {exc}")

    return _callback


async def with_timeout(operation: Awaitable[T], ms: float, label: str = "operation") -> T:
    """
    Await an operation with a deadline.

    The operation keeps running after the deadline; its eventual result is
    discarded and a late failure is only logged at debug level.

    Args:
        operation: Coroutine, task or future to await
        ms: Deadline in milliseconds
        label: Name used in the timeout error and logs

    Returns:
        The operation's result, if it settles first

    Raises:
        OperationTimeoutError: If the deadline fires first
        Exception: Whatever the operation raised, unchanged

    Example:
        >>> vector = await with_timeout(embedder.embed(text), 3000, "embedding")
    """
    task = asyncio.ensure_future(operation)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout=ms / 1000.0)
    except asyncio.TimeoutError:
        if task.done() and not task.cancelled():
            # the operation itself raised TimeoutError, or settled on the deadline
            return task.result()
        task.add_done_callback(_consume_abandoned(label))
        raise OperationTimeoutError(label, ms) from None


def is_timeout(exc: Any) -> bool:
    """True when the error is a deadline expiry rather than a hard failure"""
    return isinstance(exc, OperationTimeoutError)
