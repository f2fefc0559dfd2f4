"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

In-process utility primitives: a TTL cache with single-flight loading and
stale-on-error fallback, a flow controller (rate limit, single-flight,
timeout, retries), a multi-channel logger and a field-mapping serializer.
"""

from .cache import (
    CacheEntry,
    CacheErrorContext,
    CacheRetrieval,
    GetOrSetOptions,
    TtlCache,
)
from .errors import (
    InvalidConfigurationError,
    LilypadError,
    OperationTimeoutError,
    RateLimitExceededError,
    UnknownChannelError,
)
from .flow import FlowControlOptions, FlowController
from .logger import (
    ConsoleLoggerComponent,
    FileLoggerComponent,
    Logger,
    LoggerComponent,
    WebhookLoggerComponent,
    create_logger,
)
from .metrics import Metrics, NoOpMetrics, PrometheusMetrics
from .serializer import FieldSpec, Serializer
from .settings import CacheSettings

__all__ = [
    "TtlCache",
    "CacheEntry",
    "CacheRetrieval",
    "CacheErrorContext",
    "GetOrSetOptions",
    "CacheSettings",
    "FlowController",
    "FlowControlOptions",
    "Logger",
    "LoggerComponent",
    "ConsoleLoggerComponent",
    "FileLoggerComponent",
    "WebhookLoggerComponent",
    "create_logger",
    "Serializer",
    "FieldSpec",
    "Metrics",
    "NoOpMetrics",
    "PrometheusMetrics",
    "LilypadError",
    "InvalidConfigurationError",
    "OperationTimeoutError",
    "RateLimitExceededError",
    "UnknownChannelError",
]
