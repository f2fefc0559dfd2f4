"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: flow/retry.py.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from ..utils import exponential_backoff
from .contracts import Backoff, ErrorFn

T = TypeVar("T")


def apply_error_fn(error_fn: ErrorFn | None, error: BaseException) -> Any:
    """Return the handler's fallback for `error`, or None when it declines."""
    if error_fn is None:
        return None
    return error_fn(error)


async def call_with_retries(
    fn: Callable[[], Awaitable[T]],
    *,
    retries: int,
    error_fn: ErrorFn | None = None,
    backoff: Backoff | None = None,
    on_retry: Callable[[int, Exception], None] | None = None,
) -> T:
    """Execute callable, retrying up to `retries` times after the first try."""
    delay_for = backoff or exponential_backoff
    attempts = 0
    while True:
        try:
            return await fn()
        except Exception as error:
            if attempts >= retries:
                fallback = apply_error_fn(error_fn, error)
                if fallback is not None:
                    return fallback
                raise
            attempts += 1
            if on_retry is not None:
                on_retry(attempts, error)
            await asyncio.sleep(max(0.0, delay_for(attempts)))
