"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/__init__.py.
"""

from .ttl_cache import TtlCache
from .types import (
    CacheEntry,
    CacheErrorContext,
    CacheRetrieval,
    GetOrSetOptions,
    RetrievalType,
)

__all__ = [
    "TtlCache",
    "CacheEntry",
    "CacheRetrieval",
    "CacheErrorContext",
    "GetOrSetOptions",
    "RetrievalType",
]
