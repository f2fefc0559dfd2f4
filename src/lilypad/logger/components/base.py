"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Base class shared by logger sinks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone


class LoggerComponent(ABC):
    """
    Abstract sink for ``Logger`` channels.

    Subclasses implement ``send`` to deliver an already formatted line::

        class ListComponent(LoggerComponent):
            def __init__(self) -> None:
                super().__init__()
                self.lines: list[str] = []

            async def send(self, message: str) -> None:
                self.lines.append(message)
    """

    def __init__(self, *, name: str | None = None) -> None:
        self.name = name

    def timestamp(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def format_message(
        self,
        channel: str,
        message: str,
        *,
        logger_name: str | None = None,
    ) -> str:
        formatted = f"{self.timestamp()} - "
        label = logger_name or self.name
        if label:
            formatted += f"[{label}] "
        return formatted + f"[{channel.upper()}]: {message}"

    async def output(
        self,
        channel: str,
        message: str,
        *,
        logger_name: str | None = None,
    ) -> None:
        await self.send(self.format_message(channel, message, logger_name=logger_name))

    @abstractmethod
    async def send(self, message: str) -> None:
        """Deliver one formatted message to the sink."""
