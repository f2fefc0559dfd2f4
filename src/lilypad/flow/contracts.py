"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Typed flow-control options.
"""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from ..errors import InvalidConfigurationError

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
ErrorFn = Callable[[BaseException], Any]
Backoff = Callable[[int], float]


@dataclass(frozen=True, slots=True)
class FlowControlOptions:
    """Rate window, timeout and retry defaults for one flow controller."""

    rate_s: float | None = None
    timeout_s: float | None = None
    retries: int | None = None

    def __post_init__(self) -> None:
        for name in ("rate_s", "timeout_s", "retries"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidConfigurationError(f"{name} must be >= 0, got {value!r}")

    @staticmethod
    def from_env() -> "FlowControlOptions":
        """Load options from environment variables."""
        rate = os.getenv("LILYPAD_FLOW_RATE_S")
        timeout = os.getenv("LILYPAD_FLOW_TIMEOUT_S")
        retries = os.getenv("LILYPAD_FLOW_RETRIES")
        return FlowControlOptions(
            rate_s=float(rate) if rate else None,
            timeout_s=float(timeout) if timeout else None,
            retries=int(retries) if retries else None,
        )
