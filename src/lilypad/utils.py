"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Small shared helpers.
"""

from __future__ import annotations

import inspect
import math
from typing import Any


def exponential_backoff(attempt: int, base_s: float = 0.1) -> float:
    """Default retry delay: ``2 ** attempt * base_s`` seconds."""
    return (2**attempt) * base_s


def is_positive_finite(value: Any) -> bool:
    """Return True for real numbers that are finite and strictly positive."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


async def maybe_await(value: Any) -> Any:
    """Await `value` when it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


async def notify(logger: Any, channel: str, *values: Any) -> None:
    """Forward a notice to an optional lilypad logger when it has `channel`."""
    if logger is None or not logger.has_channel(channel):
        return
    await logger.log(channel, *values)
