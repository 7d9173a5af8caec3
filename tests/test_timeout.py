"""
Tests for the timeout guard: deadlines, error passthrough, and that a
timed-out operation keeps running without affecting the caller.
"""

import asyncio

import pytest

from travel_rag.errors import OperationTimeoutError, RetrievalError
from travel_rag.resilience.timeout import is_timeout, with_timeout


class TestWithTimeout:
    async def test_returns_result_before_deadline(self):
        async def fast():
            return 42

        assert await with_timeout(fast(), 100, "fast") == 42

    async def test_raises_timeout_kind_error(self):
        with pytest.raises(OperationTimeoutError) as exc_info:
            await with_timeout(asyncio.sleep(1), 20, "embedding")

        err = exc_info.value
        assert isinstance(err, TimeoutError)
        assert isinstance(err, RetrievalError)
        assert err.label == "embedding"
        assert err.timeout_ms == 20
        assert "embedding timeout after 20ms" in str(err)
        assert is_timeout(err)

    async def test_deadline_is_not_early(self):
        loop = asyncio.get_running_loop()
        start = loop.time()
        with pytest.raises(OperationTimeoutError):
            await with_timeout(asyncio.Event().wait(), 50, "never")
        assert loop.time() - start >= 0.045

    async def test_operation_keeps_running_after_timeout(self):
        finished = asyncio.Event()

        async def slow():
            await asyncio.sleep(0.05)
            finished.set()
            return "late"

        with pytest.raises(OperationTimeoutError):
            await with_timeout(slow(), 10, "slow")

        await asyncio.wait_for(finished.wait(), 1)
        assert finished.is_set()

    async def test_late_failure_is_not_seen_by_caller(self):
        async def fails_late():
            await asyncio.sleep(0.03)
            raise RuntimeError("too late")

        with pytest.raises(OperationTimeoutError):
            await with_timeout(fails_late(), 5, "late")
        # let the abandoned operation fail in the background
        await asyncio.sleep(0.06)

    async def test_operation_error_passes_through(self):
        async def boom():
            raise ValueError("bad input")

        with pytest.raises(ValueError, match="bad input"):
            await with_timeout(boom(), 100, "boom")

    async def test_operation_timeout_error_is_not_relabelled(self):
        async def connect():
            await asyncio.sleep(0.01)
            raise TimeoutError("socket connect timed out")

        with pytest.raises(TimeoutError, match="socket connect timed out") as exc_info:
            await with_timeout(connect(), 5000, "connect")
        assert not isinstance(exc_info.value, OperationTimeoutError)
        assert not is_timeout(exc_info.value)

    async def test_inner_deadline_keeps_its_label(self):
        async def slow():
            await asyncio.sleep(0.05)

        with pytest.raises(OperationTimeoutError) as exc_info:
            await with_timeout(with_timeout(slow(), 10, "vector_query"), 5000, "search")
        assert exc_info.value.label == "vector_query"
        await asyncio.sleep(0.06)

    def test_is_timeout_rejects_other_errors(self):
        assert not is_timeout(ValueError("x"))
        assert not is_timeout(None)
