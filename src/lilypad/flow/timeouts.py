"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: flow/timeouts.py.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import partial
from typing import TypeVar

from ..errors import OperationTimeoutError

T = TypeVar("T")

logger = logging.getLogger("lilypad.flow")


def _reap(detached: set[asyncio.Future], task: asyncio.Future) -> None:
    detached.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug("Operation failed after its timeout elapsed: %r", error)


async def await_with_timeout(
    factory: Callable[[], Awaitable[T]],
    timeout_s: float | None,
    *,
    detached: set[asyncio.Future],
) -> T:
    """
    Await ``factory()`` for at most `timeout_s` seconds.

    On expiry the operation is left running in the background and
    `OperationTimeoutError` is raised; only the wait is abandoned. The
    abandoned task is held in `detached` until it settles.
    """
    if timeout_s is None:
        return await factory()

    task = asyncio.ensure_future(factory())
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_s)
    except asyncio.CancelledError:
        task.cancel()
        raise
    if task in done:
        return task.result()

    detached.add(task)
    task.add_done_callback(partial(_reap, detached))
    raise OperationTimeoutError()
