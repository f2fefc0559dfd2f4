"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Execution wrapper composing rate limiting, single-flight, timeout and retries.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Hashable
from typing import Any, TypeVar

from ..errors import OperationTimeoutError, RateLimitExceededError
from ..metrics import Metrics, NoOpMetrics
from ..utils import maybe_await, notify
from .coalescing import SingleFlight
from .contracts import Backoff, ErrorFn, FlowControlOptions, Operation
from .rate_limit import RateLimiter
from .retry import apply_error_fn, call_with_retries
from .timeouts import await_with_timeout

T = TypeVar("T")

logger = logging.getLogger("lilypad.flow")


class FlowController:
    """
    Wrap asynchronous operations with rate limiting, single-flight
    deduplication, retries and timeouts.

    Example::

        flow = FlowController(FlowControlOptions(rate_s=1.0, timeout_s=5.0, retries=3))
        result = await flow.execute_fn(
            consumer_id="user123",
            function_id="fetch_profile",
            op=lambda: fetch_profile(123),
            backoff=lambda attempt: 2**attempt * 0.1,
        )

    - Rate limiting enforces a minimum interval per consumer/function pair.
    - Single-flight collapses concurrent calls for the same function id,
      whichever consumer issued them.
    - Retries re-run failed operations with a backoff delay.
    - Timeouts stop waiting for slow operations without cancelling them.
    """

    def __init__(
        self,
        options: FlowControlOptions | None = None,
        *,
        logger: Any = None,
        metrics: Metrics | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.options = options or FlowControlOptions()
        self.logger = logger
        self._metrics = metrics or NoOpMetrics()
        self._rate_limiter = RateLimiter(self.options.rate_s, clock=clock)
        self._single_flight = SingleFlight()
        self._detached: set[asyncio.Future] = set()

    @property
    def pending_count(self) -> int:
        """Number of function ids with an execution in flight."""
        return self._single_flight.pending_count

    def in_flight(self, function_id: Hashable) -> bool:
        return self._single_flight.in_flight(function_id)

    @property
    def detached_count(self) -> int:
        """Number of timed-out operations still running in the background."""
        return len(self._detached)

    async def execute_with_timeout(self, op: Operation[T]) -> T:
        """
        Run `op` racing the configured timeout.

        Raises:
            OperationTimeoutError: if the timeout elapses first. The
                operation itself keeps running in the background.
        """
        try:
            return await await_with_timeout(
                op, self.options.timeout_s, detached=self._detached
            )
        except OperationTimeoutError:
            self._metrics.incr("flow_timeouts")
            await notify(self.logger, "warn", f"Operation timed out after {self.options.timeout_s}s")
            raise

    async def execute_with_retries(
        self,
        op: Operation[T],
        *,
        retries: int | None = None,
        error_fn: ErrorFn | None = None,
        backoff: Backoff | None = None,
    ) -> T:
        """
        Run `op`, retrying failures up to `retries` times (instance default
        when omitted) with `backoff(attempt)` seconds between tries.

        Once retries are exhausted a non-None `error_fn(error)` result is
        returned; otherwise the last error is raised.
        """
        effective = retries if retries is not None else (self.options.retries or 0)
        return await call_with_retries(
            op,
            retries=effective,
            error_fn=error_fn,
            backoff=backoff,
            on_retry=self._record_retry,
        )

    def _record_retry(self, attempt: int, error: Exception) -> None:
        self._metrics.incr("flow_retries")
        logger.debug("Retrying operation (attempt %d) after error: %r", attempt, error)

    def rate_limit(self, consumer_id: Hashable, function_id: Hashable) -> None:
        """
        Record one invocation of `function_id` by `consumer_id`.

        Raises:
            RateLimitExceededError: if the previous recorded invocation of the
                pair is younger than the configured rate window.
        """
        try:
            self._rate_limiter.check(consumer_id, function_id)
        except RateLimitExceededError as error:
            self._metrics.incr("flow_rate_limited")
            logger.debug("%s", error)
            raise

    def reset_rate_limits(self) -> None:
        self._rate_limiter.reset()

    async def execute_fn(
        self,
        *,
        consumer_id: Hashable,
        function_id: Hashable,
        op: Operation[T],
        error_fn: ErrorFn | None = None,
        retries: int | None = None,
        backoff: Backoff | None = None,
        on_success: Callable[[T], Any] | None = None,
    ) -> T:
        """
        Execute `op` through the full pipeline: rate limit, single-flight,
        timeout and retries.

        Concurrent calls sharing `function_id` share one execution and its
        outcome regardless of `consumer_id`; the options of the first caller
        drive that execution.

        `on_success(result)` runs once inside the shared execution, only for
        an attempt that finished within the timeout, before any caller
        resumes. An attempt abandoned by its timeout never reaches it.
        """
        self.rate_limit(consumer_id, function_id)

        if self._single_flight.in_flight(function_id):
            self._metrics.incr("flow_coalesced")

        async def pipeline() -> T:
            async def attempt() -> T:
                result = await self.execute_with_timeout(op)
                if on_success is not None:
                    await maybe_await(on_success(result))
                return result

            effective = retries if retries is not None else (self.options.retries or 0)
            if effective > 0:
                return await self.execute_with_retries(
                    attempt,
                    retries=effective,
                    error_fn=error_fn,
                    backoff=backoff,
                )

            try:
                return await attempt()
            except Exception as error:
                fallback = apply_error_fn(error_fn, error)
                if fallback is not None:
                    return fallback
                raise

        return await self._single_flight.run(function_id, pipeline)
