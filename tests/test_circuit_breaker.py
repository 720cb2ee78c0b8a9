"""Circuit breaker state machine"""
import asyncio

import pytest

from orchestration.safety import CircuitBreaker, CircuitBreakerConfig, CircuitState


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(
        CircuitBreakerConfig(failure_threshold=3, cooldown_seconds=60),
        clock=clock,
    )


async def fail(breaker, tool_id="census", times=1):
    for _ in range(times):
        ticket = await breaker.acquire(tool_id)
        assert ticket is not None
        await breaker.record_failure(tool_id, ticket)


class TestClosed:
    @pytest.mark.asyncio
    async def test_opens_after_consecutive_failures(self, breaker):
        await fail(breaker, times=2)
        assert breaker.state("census") == CircuitState.CLOSED

        await fail(breaker)
        assert breaker.state("census") == CircuitState.OPEN
        assert "census" in breaker.get_all_open()

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, breaker):
        await fail(breaker, times=2)
        await breaker.record_success("census")
        await fail(breaker, times=2)

        assert breaker.state("census") == CircuitState.CLOSED
        assert breaker.failure_count("census") == 2

    @pytest.mark.asyncio
    async def test_breakers_are_independent_per_tool(self, breaker):
        await fail(breaker, "census", times=3)

        assert breaker.state("census") == CircuitState.OPEN
        assert breaker.state("bls") == CircuitState.CLOSED
        assert await breaker.acquire("bls")

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValueError):
            CircuitBreakerConfig(failure_threshold=0)


class TestOpen:
    @pytest.mark.asyncio
    async def test_rejects_during_cooldown(self, breaker, clock):
        await fail(breaker, times=3)
        clock.advance(59)

        assert not await breaker.acquire("census")
        assert breaker.is_rejecting("census")

    @pytest.mark.asyncio
    async def test_first_call_after_cooldown_is_trial(self, breaker, clock):
        await fail(breaker, times=3)
        clock.advance(60)

        assert await breaker.acquire("census")
        assert breaker.state("census") == CircuitState.HALF_OPEN
        assert not await breaker.acquire("census")


class TestHalfOpen:
    @pytest.mark.asyncio
    async def test_only_one_concurrent_trial(self, breaker, clock):
        await fail(breaker, times=3)
        clock.advance(60)

        admitted = await asyncio.gather(*(breaker.acquire("census") for _ in range(20)))

        assert sum(1 for ticket in admitted if ticket is not None) == 1
        assert [t for t in admitted if t is not None][0].trial

    @pytest.mark.asyncio
    async def test_trial_success_closes(self, breaker, clock):
        await fail(breaker, times=3)
        clock.advance(60)
        ticket = await breaker.acquire("census")

        await breaker.record_success("census", ticket)

        assert breaker.state("census") == CircuitState.CLOSED
        assert breaker.failure_count("census") == 0
        assert await breaker.acquire("census")

    @pytest.mark.asyncio
    async def test_trial_failure_reopens_with_fresh_cooldown(self, breaker, clock):
        await fail(breaker, times=3)
        clock.advance(60)
        await fail(breaker)

        assert breaker.state("census") == CircuitState.OPEN
        clock.advance(59)
        assert not await breaker.acquire("census")
        clock.advance(1)
        assert await breaker.acquire("census")

    @pytest.mark.asyncio
    async def test_release_returns_trial_slot(self, breaker, clock):
        await fail(breaker, times=3)
        clock.advance(60)
        ticket = await breaker.acquire("census")

        await breaker.release("census", ticket)

        assert breaker.state("census") == CircuitState.HALF_OPEN
        assert await breaker.acquire("census")

    @pytest.mark.asyncio
    async def test_late_success_does_not_close_during_trial(self, breaker, clock):
        early = await breaker.acquire("census")
        await fail(breaker, times=3)
        clock.advance(60)
        trial = await breaker.acquire("census")

        await breaker.record_success("census", early)

        assert breaker.state("census") == CircuitState.HALF_OPEN
        assert not await breaker.acquire("census")

        await breaker.record_success("census", trial)
        assert breaker.state("census") == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_late_failure_only_counts(self, breaker, clock):
        early = await breaker.acquire("census")
        await fail(breaker, times=3)
        clock.advance(60)
        trial = await breaker.acquire("census")

        await breaker.record_failure("census", early)

        assert breaker.state("census") == CircuitState.HALF_OPEN
        assert breaker.failure_count("census") == 4
        assert not await breaker.acquire("census")

        await breaker.record_failure("census", trial)
        assert breaker.state("census") == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_stale_trial_ticket_has_no_say(self, breaker, clock):
        await fail(breaker, times=3)
        clock.advance(60)
        stale = await breaker.acquire("census")
        await breaker.release("census", stale)
        current = await breaker.acquire("census")

        await breaker.record_failure("census", stale)
        await breaker.release("census", stale)

        assert breaker.state("census") == CircuitState.HALF_OPEN
        assert not await breaker.acquire("census")
        await breaker.record_success("census", current)
        assert breaker.state("census") == CircuitState.CLOSED


class TestForceHalfOpen:
    @pytest.mark.asyncio
    async def test_ignored_before_cooldown(self, breaker, clock):
        await fail(breaker, times=3)
        clock.advance(30)

        assert not await breaker.force_half_open("census")
        assert breaker.state("census") == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_moves_open_breaker_to_half_open(self, breaker, clock):
        await fail(breaker, times=3)
        clock.advance(60)

        assert await breaker.force_half_open("census")
        assert breaker.state("census") == CircuitState.HALF_OPEN
        assert await breaker.acquire("census")

    @pytest.mark.asyncio
    async def test_closed_breaker_untouched(self, breaker):
        assert not await breaker.force_half_open("census")
        assert breaker.state("census") == CircuitState.CLOSED


class TestConfiguration:
    @pytest.mark.asyncio
    async def test_per_tool_override(self, breaker):
        breaker.configure("bls", CircuitBreakerConfig(failure_threshold=1))

        await fail(breaker, "bls")

        assert breaker.state("bls") == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_reset(self, breaker):
        await fail(breaker, times=3)
        await breaker.reset("census")

        assert breaker.state("census") == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_status_reports_state(self, breaker):
        await fail(breaker, times=3)

        status = breaker.get_status("census")["census"]

        assert status["state"] == "open"
        assert status["failure_threshold"] == 3
