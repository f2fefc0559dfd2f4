"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cache settings and explicit config loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


@dataclass(frozen=True, slots=True)
class CacheSettings:
    """Explicit settings used to construct a ``TtlCache``."""

    ttl_s: float = 60.0
    auto_cleanup_interval_s: float | None = None
    default_error_ttl_s: float = 300.0
    default_bulk_sync_ttl_s: float = 60.0
    flow_control_timeout_s: float | None = None

    @staticmethod
    def from_env() -> "CacheSettings":
        """Load settings from environment variables."""
        return CacheSettings(
            ttl_s=float(os.getenv("LILYPAD_CACHE_TTL_S", "60")),
            auto_cleanup_interval_s=_optional_float("LILYPAD_CACHE_AUTO_CLEANUP_INTERVAL_S"),
            default_error_ttl_s=float(os.getenv("LILYPAD_CACHE_ERROR_TTL_S", "300")),
            default_bulk_sync_ttl_s=float(os.getenv("LILYPAD_CACHE_BULK_SYNC_TTL_S", "60")),
            flow_control_timeout_s=_optional_float("LILYPAD_CACHE_FLOW_TIMEOUT_S"),
        )
