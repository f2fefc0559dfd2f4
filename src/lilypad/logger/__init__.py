"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: logger/__init__.py.
"""

from .components import (
    ConsoleLoggerComponent,
    FileLoggerComponent,
    LoggerComponent,
    WebhookDeliveryError,
    WebhookLoggerComponent,
)
from .logger import Logger, create_logger, stringify

__all__ = [
    "Logger",
    "create_logger",
    "stringify",
    "LoggerComponent",
    "ConsoleLoggerComponent",
    "FileLoggerComponent",
    "WebhookLoggerComponent",
    "WebhookDeliveryError",
]
