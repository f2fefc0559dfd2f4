"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Multi-channel logger fanning messages out to pluggable sinks.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from functools import partial
from typing import Any

from ..errors import InvalidConfigurationError, UnknownChannelError
from ..utils import maybe_await
from .components import ConsoleLoggerComponent, LoggerComponent

logger = logging.getLogger("lilypad.logger")

ErrorLogging = Callable[[BaseException], "Awaitable[None] | None"]


def stringify(values: Sequence[Any]) -> str:
    """Join values with spaces, JSON-encoding everything that is not a str."""
    parts: list[str] = []
    for value in values:
        if isinstance(value, str):
            parts.append(value)
        else:
            parts.append(json.dumps(value, default=str))
    return " ".join(parts)


class Logger:
    """
    Route messages to the sinks registered for each channel.

    Channels are fixed at construction; sinks can be added later with
    ``register``::

        log = Logger(
            {
                "info": [ConsoleLoggerComponent()],
                "error": [ConsoleLoggerComponent(), FileLoggerComponent("errors.log")],
            },
            name="billing",
        )
        await log.log("info", "charged", {"user": 1})
        await log.error("refund failed")

    A failing sink never raises out of ``log``: its exception goes to
    `error_logging` when given, otherwise to the ``lilypad.logger`` logger.
    """

    def __init__(
        self,
        channels: Mapping[str, Sequence[LoggerComponent]],
        *,
        name: str | None = None,
        error_logging: ErrorLogging | None = None,
    ) -> None:
        self._components: dict[str, list[LoggerComponent]] = {}
        for channel, components in channels.items():
            if not isinstance(channel, str) or not channel.strip():
                raise InvalidConfigurationError("Logger channel names must be non-empty strings")
            self._components[channel] = list(components)
        self._name = name
        self._error_logging = error_logging

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def channels(self) -> tuple[str, ...]:
        return tuple(self._components)

    def components(self, channel: str) -> tuple[LoggerComponent, ...]:
        return tuple(self._sinks(channel))

    def has_channel(self, channel: str) -> bool:
        return channel in self._components

    def _sinks(self, channel: str) -> list[LoggerComponent]:
        try:
            return self._components[channel]
        except KeyError:
            raise UnknownChannelError(f"Unknown logger channel '{channel}'") from None

    async def log(self, channel: str, *values: Any) -> None:
        sinks = list(self._sinks(channel))
        if not sinks:
            return
        message = stringify(values)
        results = await asyncio.gather(
            *(sink.output(channel, message, logger_name=self._name) for sink in sinks),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                await self._report(channel, result)

    async def _report(self, channel: str, error: Exception) -> None:
        if self._error_logging is not None:
            await maybe_await(self._error_logging(error))
            return
        logger.error(
            "Error in logger component for channel %r: %r",
            channel,
            error,
            exc_info=error,
        )

    def bind(self, channel: str) -> Callable[..., Awaitable[None]]:
        """Return a callable logging to `channel` only."""
        self._sinks(channel)
        return partial(self.log, channel)

    async def debug(self, *values: Any) -> None:
        await self.log("debug", *values)

    async def info(self, *values: Any) -> None:
        await self.log("info", *values)

    async def warn(self, *values: Any) -> None:
        await self.log("warn", *values)

    async def error(self, *values: Any) -> None:
        await self.log("error", *values)

    def register(self, components: Mapping[str, Sequence[LoggerComponent]]) -> "Logger":
        """Append sinks to existing channels."""
        for channel, extra in components.items():
            self._sinks(channel).extend(extra)
        return self


def create_logger(
    channels: Mapping[str, Sequence[LoggerComponent]] | None = None,
    **kwargs: Any,
) -> Logger:
    """Build a logger; defaults to ``log``/``error``/``warn`` console channels."""
    if channels is None:
        console = ConsoleLoggerComponent()
        channels = {"log": [console], "error": [console], "warn": [console]}
    return Logger(channels, **kwargs)
