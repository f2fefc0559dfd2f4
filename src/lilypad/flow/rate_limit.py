"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: flow/rate_limit.py.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Hashable

from ..errors import RateLimitExceededError


class RateLimiter:
    """Minimum-interval limiter keyed by consumer/function pair."""

    def __init__(
        self,
        rate_s: float | None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._rate_s = rate_s
        self._clock = clock
        self._rows: dict[tuple[Hashable, Hashable], float] = {}

    @property
    def rate_s(self) -> float | None:
        return self._rate_s

    def check(self, consumer_id: Hashable, function_id: Hashable) -> None:
        if self._rate_s is None:
            return
        key = (consumer_id, function_id)
        now = self._clock()
        last = self._rows.get(key)
        if last is not None and now - last < self._rate_s:
            raise RateLimitExceededError(consumer_id, function_id)
        self._rows[key] = now

    def reset(self) -> None:
        self._rows.clear()
