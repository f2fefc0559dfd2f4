"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: flow/__init__.py.
"""

from .coalescing import SingleFlight
from .contracts import FlowControlOptions
from .controller import FlowController
from .rate_limit import RateLimiter
from .retry import call_with_retries
from .timeouts import await_with_timeout

__all__ = [
    "FlowController",
    "FlowControlOptions",
    "SingleFlight",
    "RateLimiter",
    "call_with_retries",
    "await_with_timeout",
]
