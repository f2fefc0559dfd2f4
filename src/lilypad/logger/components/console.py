"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Console sink for logger channels.
"""

from __future__ import annotations

import sys
from typing import TextIO

from .base import LoggerComponent


class ConsoleLoggerComponent(LoggerComponent):
    """Write formatted messages to a text stream (stdout by default)."""

    def __init__(self, *, output: TextIO | None = None, name: str | None = None) -> None:
        super().__init__(name=name)
        self._output = output

    async def send(self, message: str) -> None:
        out = self._output or sys.stdout
        out.write(message + "\n")
        out.flush()
