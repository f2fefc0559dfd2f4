"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Exception types raised by lilypad primitives.
"""

from __future__ import annotations

from collections.abc import Hashable


class LilypadError(RuntimeError):
    """Base class for every error raised by the library itself."""


class InvalidConfigurationError(LilypadError, ValueError):
    """Raised when constructor or settings values are rejected."""


class OperationTimeoutError(LilypadError, TimeoutError):
    """Raised when a flow-controlled operation exceeds its timeout."""

    def __init__(self, message: str = "Operation timed out") -> None:
        super().__init__(message)


class RateLimitExceededError(LilypadError):
    """Raised when a consumer invokes a function again inside the rate window."""

    def __init__(self, consumer_id: Hashable, function_id: Hashable) -> None:
        self.consumer_id = consumer_id
        self.function_id = function_id
        self.rate_key = f"{consumer_id}#{function_id}"
        super().__init__(f"Rate limit exceeded for {self.rate_key}")


class UnknownChannelError(LilypadError):
    """Raised when a logger channel was not declared at construction."""
