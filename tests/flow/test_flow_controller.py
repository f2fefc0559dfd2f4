from __future__ import annotations

import asyncio

import pytest

from lilypad.errors import InvalidConfigurationError, OperationTimeoutError, RateLimitExceededError
from lilypad.flow import FlowControlOptions, FlowController, SingleFlight
from lilypad.utils import exponential_backoff


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingMetrics:
    def __init__(self) -> None:
        self.counts: dict[str, int] = {}

    def incr(self, name, value=1, *, tags=None) -> None:
        _ = tags
        self.counts[name] = self.counts.get(name, 0) + value


def run_async(coro):
    return asyncio.run(coro)


def test_options_reject_negative_values():
    with pytest.raises(InvalidConfigurationError, match="retries"):
        FlowControlOptions(retries=-1)


def test_timeout_returns_result_when_fast_enough():
    async def scenario() -> None:
        flow = FlowController(FlowControlOptions(timeout_s=1.0))

        async def fast() -> str:
            return "success"

        assert await flow.execute_with_timeout(fast) == "success"

    run_async(scenario())


def test_timeout_raises_but_leaves_operation_running():
    async def scenario() -> None:
        metrics = RecordingMetrics()
        flow = FlowController(FlowControlOptions(timeout_s=0.01), metrics=metrics)
        finished: list[str] = []

        async def slow() -> str:
            await asyncio.sleep(0.05)
            finished.append("late")
            return "late"

        with pytest.raises(OperationTimeoutError, match="Operation timed out"):
            await flow.execute_with_timeout(slow)
        assert finished == []

        await asyncio.sleep(0.1)
        assert finished == ["late"]
        assert metrics.counts["flow_timeouts"] == 1

    run_async(scenario())


def test_timed_out_operations_are_tracked_per_controller():
    async def scenario() -> None:
        flow = FlowController(FlowControlOptions(timeout_s=0.01))
        other = FlowController(FlowControlOptions(timeout_s=0.01))

        async def slow() -> None:
            await asyncio.sleep(0.05)
            raise RuntimeError("late failure")

        with pytest.raises(OperationTimeoutError):
            await flow.execute_with_timeout(slow)
        assert flow.detached_count == 1
        assert other.detached_count == 0

        await asyncio.sleep(0.1)
        assert flow.detached_count == 0

    run_async(scenario())


def test_on_success_runs_once_before_callers_resume():
    async def scenario() -> None:
        flow = FlowController()
        committed: list[str] = []
        seen: list[list[str]] = []

        async def op() -> str:
            await asyncio.sleep(0.01)
            return "value"

        async def call() -> None:
            await flow.execute_fn(
                consumer_id="c", function_id="f", op=op, on_success=committed.append
            )
            seen.append(list(committed))

        await asyncio.gather(call(), call(), call())
        assert committed == ["value"]
        assert seen == [["value"]] * 3

    run_async(scenario())


def test_on_success_skipped_for_timed_out_attempt():
    async def scenario() -> None:
        flow = FlowController(FlowControlOptions(timeout_s=0.01))
        committed: list[str] = []

        async def slow() -> str:
            await asyncio.sleep(0.05)
            return "late"

        with pytest.raises(OperationTimeoutError):
            await flow.execute_fn(
                consumer_id="c", function_id="f", op=slow, on_success=committed.append
            )
        await asyncio.sleep(0.1)
        assert committed == []

    run_async(scenario())


def test_timeout_error_is_a_timeout_error():
    assert issubclass(OperationTimeoutError, TimeoutError)


def test_no_timeout_configured_runs_directly():
    async def scenario() -> None:
        flow = FlowController()

        async def op() -> str:
            await asyncio.sleep(0.01)
            return "success"

        assert await flow.execute_with_timeout(op) == "success"

    run_async(scenario())


def test_retries_return_first_success():
    async def scenario() -> None:
        flow = FlowController(FlowControlOptions(retries=3))
        calls = 0

        async def op() -> str:
            nonlocal calls
            calls += 1
            return "success"

        assert await flow.execute_with_retries(op) == "success"
        assert calls == 1

    run_async(scenario())


def test_retries_recover_after_failure():
    async def scenario() -> None:
        flow = FlowController(FlowControlOptions(retries=3))
        calls = 0

        async def op() -> str:
            nonlocal calls
            calls += 1
            if calls < 2:
                raise RuntimeError("fail")
            return "success"

        result = await flow.execute_with_retries(op, backoff=lambda attempt: 0)
        assert result == "success"
        assert calls == 2

    run_async(scenario())


def test_retry_exhaustion_tries_n_plus_one_times():
    async def scenario() -> None:
        flow = FlowController(FlowControlOptions(retries=2))
        calls = 0

        async def op() -> str:
            nonlocal calls
            calls += 1
            raise ValueError(f"fail {calls}")

        with pytest.raises(ValueError, match="fail 3"):
            await flow.execute_with_retries(op, backoff=lambda attempt: 0.001)
        assert calls == 3

    run_async(scenario())


def test_retries_use_error_fn_after_exhaustion():
    async def scenario() -> None:
        flow = FlowController(FlowControlOptions(retries=1))
        seen: list[BaseException] = []

        async def op() -> str:
            raise RuntimeError("fail")

        def error_fn(error: BaseException) -> str:
            seen.append(error)
            return "fallback"

        result = await flow.execute_with_retries(op, error_fn=error_fn, backoff=lambda a: 0)
        assert result == "fallback"
        assert len(seen) == 1

    run_async(scenario())


def test_retries_error_fn_returning_none_reraises():
    async def scenario() -> None:
        flow = FlowController()

        async def op() -> str:
            raise RuntimeError("fail")

        with pytest.raises(RuntimeError, match="fail"):
            await flow.execute_with_retries(op, retries=1, error_fn=lambda e: None, backoff=lambda a: 0)

    run_async(scenario())


def test_custom_backoff_receives_attempt_numbers():
    async def scenario() -> None:
        metrics = RecordingMetrics()
        flow = FlowController(FlowControlOptions(retries=2), metrics=metrics)
        attempts: list[int] = []
        calls = 0

        def backoff(attempt: int) -> float:
            attempts.append(attempt)
            return 0.001

        async def op() -> str:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise RuntimeError("fail")
            return "success"

        assert await flow.execute_with_retries(op, backoff=backoff) == "success"
        assert attempts == [1, 2]
        assert metrics.counts["flow_retries"] == 2

    run_async(scenario())


def test_default_backoff_is_exponential():
    assert exponential_backoff(1) == pytest.approx(0.2)
    assert exponential_backoff(3) == pytest.approx(0.8)


def test_rate_limit_is_noop_without_rate():
    flow = FlowController()
    flow.rate_limit("user1", "func1")
    flow.rate_limit("user1", "func1")


def test_rate_limit_rejects_second_call_in_window_then_recovers():
    clock = FakeClock()
    flow = FlowController(FlowControlOptions(rate_s=1.0), clock=clock)

    flow.rate_limit("user1", "func1")
    with pytest.raises(RateLimitExceededError, match="Rate limit exceeded for user1#func1") as info:
        flow.rate_limit("user1", "func1")
    assert info.value.consumer_id == "user1"
    assert info.value.function_id == "func1"

    clock.advance(1.0)
    flow.rate_limit("user1", "func1")


def test_rejected_rate_check_does_not_refresh_window():
    clock = FakeClock()
    flow = FlowController(FlowControlOptions(rate_s=1.0), clock=clock)

    flow.rate_limit("user1", "func1")
    clock.advance(0.6)
    with pytest.raises(RateLimitExceededError):
        flow.rate_limit("user1", "func1")
    clock.advance(0.4)
    flow.rate_limit("user1", "func1")


def test_rate_limit_tracks_consumer_function_pairs():
    flow = FlowController(FlowControlOptions(rate_s=10.0), clock=FakeClock())
    flow.rate_limit("user1", "func1")
    flow.rate_limit("user2", "func1")
    flow.rate_limit("user1", "func2")

    flow.reset_rate_limits()
    flow.rate_limit("user1", "func1")


def test_execute_fn_runs_operation():
    async def scenario() -> None:
        flow = FlowController()

        async def op() -> str:
            return "success"

        result = await flow.execute_fn(consumer_id="user1", function_id="func1", op=op)
        assert result == "success"
        assert flow.pending_count == 0

    run_async(scenario())


def test_execute_fn_collapses_concurrent_calls_across_consumers():
    async def scenario() -> None:
        metrics = RecordingMetrics()
        flow = FlowController(metrics=metrics)
        gate = asyncio.Event()
        calls = 0

        async def op() -> str:
            nonlocal calls
            calls += 1
            await gate.wait()
            return "shared"

        tasks = [
            asyncio.create_task(
                flow.execute_fn(consumer_id=f"user{i}", function_id="func1", op=op)
            )
            for i in range(3)
        ]
        await asyncio.sleep(0)
        assert flow.in_flight("func1")

        gate.set()
        results = await asyncio.gather(*tasks)

        assert results == ["shared", "shared", "shared"]
        assert calls == 1
        assert metrics.counts["flow_coalesced"] == 2
        assert not flow.in_flight("func1")

    run_async(scenario())


def test_execute_fn_shares_failures_and_releases_key():
    async def scenario() -> None:
        flow = FlowController()
        calls = 0

        async def failing() -> str:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            raise RuntimeError("boom")

        results = await asyncio.gather(
            flow.execute_fn(consumer_id="a", function_id="f", op=failing),
            flow.execute_fn(consumer_id="b", function_id="f", op=failing),
            return_exceptions=True,
        )
        assert calls == 1
        assert all(isinstance(r, RuntimeError) for r in results)
        assert not flow.in_flight("f")

        with pytest.raises(RuntimeError, match="boom"):
            await flow.execute_fn(consumer_id="a", function_id="f", op=failing)
        assert calls == 2

    run_async(scenario())


def test_execute_fn_rate_limit_rejects_before_running():
    async def scenario() -> None:
        flow = FlowController(FlowControlOptions(rate_s=60.0))
        calls = 0

        async def op() -> str:
            nonlocal calls
            calls += 1
            return "ok"

        await flow.execute_fn(consumer_id="user1", function_id="func1", op=op)
        with pytest.raises(RateLimitExceededError):
            await flow.execute_fn(consumer_id="user1", function_id="func1", op=op)
        assert calls == 1

    run_async(scenario())


def test_execute_fn_applies_error_fn_without_retries():
    async def scenario() -> None:
        flow = FlowController()

        async def op() -> str:
            raise RuntimeError("fail")

        result = await flow.execute_fn(
            consumer_id="user1",
            function_id="func1",
            op=op,
            error_fn=lambda error: f"handled {error}",
        )
        assert result == "handled fail"

    run_async(scenario())


def test_execute_fn_retries_timed_out_attempts():
    async def scenario() -> None:
        flow = FlowController(FlowControlOptions(timeout_s=0.02))
        calls = 0

        async def op() -> str:
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.sleep(0.2)
            return "second try"

        result = await flow.execute_fn(
            consumer_id="user1",
            function_id="func1",
            op=op,
            retries=1,
            backoff=lambda attempt: 0,
        )
        assert result == "second try"
        assert calls == 2

    run_async(scenario())


def test_single_flight_cancelled_waiter_leaves_shared_run_alone():
    async def scenario() -> None:
        flight = SingleFlight()
        gate = asyncio.Event()

        async def op() -> str:
            await gate.wait()
            return "done"

        first = asyncio.create_task(flight.run("k", op))
        second = asyncio.create_task(flight.run("k", op))
        await asyncio.sleep(0)

        first.cancel()
        await asyncio.sleep(0)
        gate.set()

        assert await second == "done"
        assert first.cancelled()
        assert flight.pending_count == 0

    run_async(scenario())
