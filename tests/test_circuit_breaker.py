"""
Tests for CircuitBreaker state transitions.
"""

from travel_rag.resilience.circuit_breaker import CircuitBreaker

from tests.fakes import FakeClock


def make_breaker(clock, opened=None):
    return CircuitBreaker(
        "tripadvisor",
        failure_threshold=3,
        reset_timeout_ms=60000,
        on_open=(lambda b: opened.append(b.name)) if opened is not None else None,
        clock=clock,
    )


class TestCircuitBreaker:
    def test_starts_closed(self):
        breaker = make_breaker(FakeClock())
        assert not breaker.is_open()
        assert breaker.failure_count == 0
        assert breaker.retry_in_ms() == 0

    def test_opens_after_threshold_consecutive_failures(self):
        clock = FakeClock()
        opened = []
        breaker = make_breaker(clock, opened)

        breaker.record_failure()
        breaker.record_failure()
        assert not breaker.is_open()

        breaker.record_failure()
        assert breaker.is_open()
        assert opened == ["tripadvisor"]
        assert breaker.retry_in_ms() == 60000

    def test_stays_open_until_reset_timeout(self):
        clock = FakeClock()
        breaker = make_breaker(clock)
        for _ in range(3):
            breaker.record_failure()

        clock.advance(59.9)
        assert breaker.is_open()
        clock.advance(0.2)
        assert not breaker.is_open()

    def test_failed_trial_reopens_for_full_window(self):
        clock = FakeClock()
        opened = []
        breaker = make_breaker(clock, opened)
        for _ in range(3):
            breaker.record_failure()
        clock.advance(61)
        assert not breaker.is_open()

        breaker.record_failure()
        assert breaker.is_open()
        assert breaker.retry_in_ms() == 60000
        assert len(opened) == 2

    def test_success_resets_at_any_point(self):
        clock = FakeClock()
        breaker = make_breaker(clock)
        for _ in range(3):
            breaker.record_failure()
        assert breaker.is_open()

        breaker.record_success()
        assert not breaker.is_open()
        assert breaker.failure_count == 0

    def test_success_between_failures_restarts_count(self):
        breaker = make_breaker(FakeClock())
        breaker.record_failure()
        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()
        breaker.record_failure()
        assert not breaker.is_open()

    def test_snapshot(self):
        clock = FakeClock()
        breaker = make_breaker(clock)
        assert breaker.snapshot()["state"] == "closed"
        for _ in range(3):
            breaker.record_failure()
        snapshot = breaker.snapshot()
        assert snapshot["state"] == "open"
        assert snapshot["failure_count"] == 3
        assert snapshot["retry_in_ms"] == 60000
