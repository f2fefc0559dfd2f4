"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/types.py.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from .ttl_cache import TtlCache

RetrievalType = Literal["hit", "expired", "miss"]


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One stored value with its absolute expiration time."""

    value: Any
    expires_at_s: float

    def is_stale(self, now_s: float) -> bool:
        return now_s >= self.expires_at_s


@dataclass(frozen=True, slots=True)
class CacheRetrieval:
    """
    Classification of one key lookup.

    ``hit`` and ``expired`` carry the stored value and expiration time;
    ``miss`` carries neither.
    """

    type: RetrievalType
    value: Any = None
    expires_at_s: float | None = None

    @property
    def is_hit(self) -> bool:
        return self.type == "hit"

    @property
    def is_expired(self) -> bool:
        return self.type == "expired"

    @property
    def is_miss(self) -> bool:
        return self.type == "miss"


@dataclass(frozen=True, slots=True)
class GetOrSetOptions:
    """Per-call options of ``TtlCache.get_or_set``."""

    ttl_s: float | None = None
    skip_cache: bool = False
    return_old_on_error: bool = False
    error_fn: Callable[["CacheErrorContext"], Any] | None = None
    error_ttl_s: float | None = None
    data: Any = None


@dataclass(frozen=True, slots=True)
class CacheErrorContext:
    """Argument passed to ``error_fn`` when a loader fails."""

    key: Any
    error: BaseException
    options: GetOrSetOptions
    cache: "TtlCache"
