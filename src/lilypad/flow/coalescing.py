"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: flow/coalescing.py.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import TypeVar

T = TypeVar("T")


class SingleFlight:
    """Deduplicate identical in-flight operations by key."""

    def __init__(self) -> None:
        self._tasks: dict[Hashable, asyncio.Future] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._tasks

    @property
    def pending_count(self) -> int:
        """Number of keys with an operation currently running."""
        return len(self._tasks)

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        existing = self._tasks.get(key)
        if existing is not None:
            return await asyncio.shield(existing)

        async def _flight() -> T:
            try:
                return await factory()
            finally:
                if self._tasks.get(key) is task:
                    del self._tasks[key]

        task = asyncio.ensure_future(_flight())
        self._tasks[key] = task
        # Waiters are shielded so a cancelled caller leaves the shared run alone.
        return await asyncio.shield(task)
