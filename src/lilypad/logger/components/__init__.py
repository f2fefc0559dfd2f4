"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: logger/components/__init__.py.
"""

from .base import LoggerComponent
from .console import ConsoleLoggerComponent
from .file import FileLoggerComponent
from .webhook import WebhookDeliveryError, WebhookLoggerComponent

__all__ = [
    "LoggerComponent",
    "ConsoleLoggerComponent",
    "FileLoggerComponent",
    "WebhookLoggerComponent",
    "WebhookDeliveryError",
]
