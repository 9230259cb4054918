"""
Tests for circuit breaker pattern.
"""

import pytest

from approval_bridge.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError, CircuitState


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


async def succeed():
    return "success"


async def fail():
    raise Exception("Test failure")


class TestCircuitBreaker:
    """Test circuit breaker functionality."""

    def test_initial_state_closed(self):
        """Circuit breaker should start in CLOSED state."""
        cb = CircuitBreaker(failure_threshold=3, timeout=5)
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0

    @pytest.mark.asyncio
    async def test_successful_call_in_closed_state(self):
        cb = CircuitBreaker(failure_threshold=3)

        result = await cb.call(succeed)

        assert result == "success"
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0

    @pytest.mark.asyncio
    async def test_arguments_are_passed_through(self):
        cb = CircuitBreaker()

        async def add(a, b=0):
            return a + b

        assert await cb.call(add, 2, b=3) == 5

    @pytest.mark.asyncio
    async def test_single_failure_stays_closed(self):
        cb = CircuitBreaker(failure_threshold=3)

        with pytest.raises(Exception, match="Test failure"):
            await cb.call(fail)

        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 1

    @pytest.mark.asyncio
    async def test_threshold_failures_opens_circuit(self):
        cb = CircuitBreaker(failure_threshold=3)

        for _ in range(3):
            with pytest.raises(Exception):
                await cb.call(fail)

        assert cb.state == CircuitState.OPEN
        assert cb.failure_count == 3

    @pytest.mark.asyncio
    async def test_open_circuit_blocks_calls(self):
        """Open circuit should block all calls without running them."""
        cb = CircuitBreaker(failure_threshold=2)
        ran = []

        async def tracked():
            ran.append(True)

        for _ in range(2):
            with pytest.raises(Exception):
                await cb.call(fail)

        with pytest.raises(CircuitBreakerOpenError):
            await cb.call(tracked)
        assert ran == []

    @pytest.mark.asyncio
    async def test_half_open_after_timeout(self):
        """After the timeout a trial call is let through and closes the circuit."""
        clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=2, timeout=5, clock=clock)

        for _ in range(2):
            with pytest.raises(Exception):
                await cb.call(fail)
        assert cb.state == CircuitState.OPEN

        clock.now += 5
        result = await cb.call(succeed)

        assert result == "success"
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self):
        clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=2, timeout=5, clock=clock)

        for _ in range(2):
            with pytest.raises(Exception):
                await cb.call(fail)

        clock.now += 6
        with pytest.raises(Exception, match="Test failure"):
            await cb.call(fail)

        assert cb.state == CircuitState.OPEN
        with pytest.raises(CircuitBreakerOpenError):
            await cb.call(succeed)

    @pytest.mark.asyncio
    async def test_still_open_before_timeout(self):
        clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=1, timeout=5, clock=clock)

        with pytest.raises(Exception):
            await cb.call(fail)

        clock.now += 4.9
        with pytest.raises(CircuitBreakerOpenError):
            await cb.call(succeed)

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self):
        cb = CircuitBreaker(failure_threshold=3)

        for _ in range(2):
            with pytest.raises(Exception):
                await cb.call(fail)
        assert cb.failure_count == 2

        await cb.call(succeed)
        assert cb.failure_count == 0
        assert cb.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_get_state(self):
        clock = FakeClock(now=42.0)
        cb = CircuitBreaker(failure_threshold=5, timeout=60, name="TestCB", clock=clock)

        with pytest.raises(Exception):
            await cb.call(fail)

        state = cb.get_state()
        assert state["name"] == "TestCB"
        assert state["state"] == "closed"
        assert state["failure_count"] == 1
        assert state["failure_threshold"] == 5
        assert state["last_failure_time"] == 42.0

    @pytest.mark.asyncio
    async def test_monitoring_only_breaker_lets_calls_through(self):
        """Without fail_fast an OPEN circuit is reported but never blocks."""
        cb = CircuitBreaker(failure_threshold=1, timeout=60, fail_fast=False)

        with pytest.raises(Exception):
            await cb.call(fail)
        assert cb.state == CircuitState.OPEN

        assert await cb.call(succeed) == "success"
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0
