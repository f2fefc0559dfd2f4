"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Append-only file sink for logger channels.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path

from .base import LoggerComponent


class FileLoggerComponent(LoggerComponent):
    """Append one UTF-8 line per message to `path`, off the event loop."""

    def __init__(self, path: str | Path, *, name: str | None = None) -> None:
        super().__init__(name=name)
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _append(self, message: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(message + "\n")

    async def send(self, message: str) -> None:
        await asyncio.to_thread(self._append, message)
