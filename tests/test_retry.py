"""
Tests for the retry framework.

Backoff policy and state, the backoff timer, throttled warnings and the
single-operation retry manager.
"""

import asyncio
import logging

import pytest
from conftest import ClusterError, RecordingSleep, rejected

from esresilience.core.retry import (
    DEFAULT_RETRY_POLICY,
    BackoffTimer,
    RetryManager,
    RetryPolicy,
    RetryState,
    ThrottledLogger,
)
from esresilience.exceptions import OperationError, RetryBudgetExceededError


class TestRetryPolicy:
    """Tests for RetryPolicy configuration."""

    def test_default_values(self):
        policy = RetryPolicy()
        assert policy.initial_floor == 5.0
        assert policy.initial_ceiling == 10.0
        assert policy.floor_step == 5.0
        assert policy.ceiling_step == 10.0
        assert policy.max_floor == 30.0
        assert policy.max_ceiling == 60.0
        assert policy.max_retries is None
        assert policy.max_elapsed is None
        assert policy.bounded is False

    def test_default_policy_is_unbounded(self):
        assert DEFAULT_RETRY_POLICY == RetryPolicy()

    def test_validation_floor_above_ceiling(self):
        with pytest.raises(ValueError, match="initial_floor must be <= initial_ceiling"):
            RetryPolicy(initial_floor=20.0, initial_ceiling=10.0)

    def test_validation_caps(self):
        with pytest.raises(ValueError, match="max_floor must be <= max_ceiling"):
            RetryPolicy(max_floor=90.0, max_ceiling=60.0)

    def test_validation_max_retries(self):
        with pytest.raises(ValueError, match="max_retries must be >= 0"):
            RetryPolicy(max_retries=-1)

    def test_validation_max_elapsed(self):
        with pytest.raises(ValueError, match="max_elapsed must be > 0"):
            RetryPolicy(max_elapsed=0)

    def test_new_state_is_fresh(self):
        policy = RetryPolicy()
        first = policy.new_state()
        first.next_delay()
        second = policy.new_state()
        assert second is not first
        assert second.retries == 0
        assert (second.floor, second.ceiling) == (5.0, 10.0)


class TestRetryState:
    """Tests for the escalating delay window."""

    def test_initial_window(self):
        state = RetryState()
        assert state.floor == 5.0
        assert state.ceiling == 10.0
        assert state.retries == 0

    def test_window_escalates_and_caps(self):
        state = RetryState()
        for k in range(12):
            floor, ceiling = state.floor, state.ceiling
            assert floor == min(5.0 + 5.0 * k, 30.0)
            assert ceiling == min(10.0 + 10.0 * k, 60.0)

            delay = state.next_delay()
            assert floor <= delay < ceiling
            assert state.floor >= floor
            assert state.ceiling >= ceiling
            assert state.floor <= state.ceiling

        assert state.retries == 12
        assert (state.floor, state.ceiling) == (30.0, 60.0)

    def test_delay_drawn_from_window(self, monkeypatch):
        monkeypatch.setattr("esresilience.core.retry.policy.random.random", lambda: 0.0)
        state = RetryState()
        assert state.next_delay() == 5.0

        monkeypatch.setattr("esresilience.core.retry.policy.random.random", lambda: 0.5)
        # Second window is [10, 20)
        assert state.next_delay() == 15.0

    def test_records_delays(self):
        state = RetryState()
        delays = [state.next_delay() for _ in range(3)]
        assert state.delays == delays

    def test_exhausted_by_retry_count(self):
        state = RetryState(policy=RetryPolicy(max_retries=2))
        assert not state.exhausted()
        state.next_delay()
        state.next_delay()
        assert state.exhausted()

    def test_exhausted_by_elapsed_time(self):
        state = RetryState(policy=RetryPolicy(max_elapsed=60.0))
        assert not state.exhausted()
        state.started_at -= 61.0
        assert state.exhausted()

    def test_unbounded_never_exhausted(self):
        state = RetryState()
        for _ in range(100):
            state.next_delay()
        assert not state.exhausted()


class TestBackoffTimer:
    """Tests for the non-blocking backoff timer."""

    @pytest.mark.asyncio
    async def test_wait_sleeps_drawn_delay(self, sleep):
        timer = BackoffTimer(sleep)
        state = RetryState()
        delay = await timer.wait(state)
        assert sleep.delays == [delay]
        assert 5.0 <= delay < 10.0
        assert state.retries == 1

    @pytest.mark.asyncio
    async def test_wait_raises_when_budget_spent(self, sleep):
        timer = BackoffTimer(sleep)
        state = RetryState(policy=RetryPolicy(max_retries=1))
        await timer.wait(state)
        with pytest.raises(RetryBudgetExceededError) as exc_info:
            await timer.wait(state, reason="search: overloaded")
        assert exc_info.value.attempts == 1
        assert "search: overloaded" in str(exc_info.value)
        assert len(sleep.delays) == 1

    @pytest.mark.asyncio
    async def test_default_sleep_does_not_block_loop(self):
        policy = RetryPolicy(initial_floor=0.01, initial_ceiling=0.02)
        timer = BackoffTimer()
        waited = False
        seen_while_waiting = []

        async def wait():
            nonlocal waited
            await timer.wait(policy.new_state())
            waited = True

        async def ticker():
            # Yield so the wait starts first
            await asyncio.sleep(0)
            seen_while_waiting.append(waited)

        await asyncio.gather(wait(), ticker())
        assert seen_while_waiting == [False]
        assert waited


class TestThrottledLogger:
    """Tests for the fixed-window warning throttle."""

    def test_emits_once_per_window(self, caplog):
        now = [100.0]
        warning = ThrottledLogger(
            logging.getLogger("esresilience.test.throttle"), "queues overloaded", interval=5.0, clock=lambda: now[0]
        )

        with caplog.at_level(logging.WARNING, logger="esresilience.test.throttle"):
            assert warning() is True
            assert warning() is False
            now[0] += 4.9
            assert warning() is False
            assert warning.suppressed == 2
            now[0] += 0.2
            assert warning() is True

        messages = [r.message for r in caplog.records if r.name == "esresilience.test.throttle"]
        assert messages == ["queues overloaded", "queues overloaded"]

    def test_reset(self):
        warning = ThrottledLogger(logging.getLogger("esresilience.test.throttle"), "msg", interval=60.0)
        assert warning() is True
        warning.reset()
        assert warning() is True

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            ThrottledLogger(logging.getLogger("x"), "msg", interval=-1)


class TestRetryManager:
    """Tests for the classify-then-retry wrapper."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, timer, sleep):
        manager = RetryManager(timer=timer)
        calls = 0

        async def call():
            nonlocal calls
            calls += 1
            return {"acknowledged": True}

        assert await manager.execute("index_create", call) == {"acknowledged": True}
        assert calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_overload_retried_with_escalating_delay(self, timer, sleep):
        manager = RetryManager(timer=timer)
        attempts = []

        async def call():
            attempts.append(1)
            if len(attempts) < 4:
                raise rejected()
            return "ok"

        assert await manager.execute("get", call) == "ok"
        assert len(attempts) == 4
        assert len(sleep.delays) == 3
        assert 5.0 <= sleep.delays[0] < 10.0
        assert 10.0 <= sleep.delays[1] < 20.0
        assert 15.0 <= sleep.delays[2] < 30.0

    @pytest.mark.asyncio
    async def test_connection_loss_retried(self, timer, sleep):
        manager = RetryManager(timer=timer)
        outcomes = [Exception("No Living connections"), "done"]

        async def call():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert await manager.execute("index", call) == "done"
        assert len(sleep.delays) == 1

    @pytest.mark.asyncio
    async def test_fatal_raises_once_with_context(self, timer, sleep, caplog):
        manager = RetryManager(timer=timer)
        calls = 0
        cause = ClusterError("mapper_parsing_exception", "failed to parse field [age]", status=400)

        async def call():
            nonlocal calls
            calls += 1
            raise cause

        with caplog.at_level(logging.ERROR, logger="esresilience"):
            with pytest.raises(OperationError) as exc_info:
                await manager.execute("update", call)

        assert calls == 1
        assert sleep.delays == []
        assert exc_info.value.operation == "update"
        assert exc_info.value.reason == "mapper_parsing_exception: failed to parse field [age]"
        assert str(exc_info.value) == (
            "invoking update resulted in a runtime error: mapper_parsing_exception: failed to parse field [age]"
        )
        assert exc_info.value.__cause__ is cause
        assert any("invoking update" in r.message for r in caplog.records)

    @pytest.mark.asyncio
    async def test_shared_state_keeps_escalating(self, timer, sleep):
        manager = RetryManager(timer=timer)
        state = manager.new_state()
        failures = [rejected(), None, rejected(), None]

        async def call():
            failure = failures.pop(0)
            if failure:
                raise failure
            return "ok"

        await manager.execute("first", call, state=state)
        await manager.execute("second", call, state=state)
        assert state.retries == 2
        assert 10.0 <= sleep.delays[1] < 20.0

    @pytest.mark.asyncio
    async def test_budget_turns_retriable_into_failure(self, sleep):
        manager = RetryManager(RetryPolicy(max_retries=2), BackoffTimer(sleep))

        async def call():
            raise rejected()

        with pytest.raises(RetryBudgetExceededError):
            await manager.execute("get", call)
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        manager = RetryManager(timer=BackoffTimer(RecordingSleep()))

        async def call():
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await manager.execute("get", call)
