"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Counter sinks used by the cache and flow controller.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class Metrics(Protocol):
    """Minimal metrics interface for cache and flow instrumentation."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        """Increment a counter metric."""


class NoOpMetrics:
    """Default metrics sink when no metrics backend is provided."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        _ = name
        _ = value
        _ = tags


COUNTER_DESCRIPTIONS: dict[str, str] = {
    "cache_hits": "get_or_set calls answered from a fresh entry",
    "cache_misses": "get_or_set calls that needed a load",
    "cache_loads": "Loader results stored in the cache",
    "cache_fallbacks": "Failed loads answered by error_fn or the previous value",
    "cache_bulk_syncs": "Bulk syncs that replaced the cache contents",
    "flow_timeouts": "Operations abandoned after their timeout",
    "flow_retries": "Retry attempts after a failed operation",
    "flow_rate_limited": "Calls rejected inside the rate window",
    "flow_coalesced": "Calls that joined an execution already in flight",
}


class PrometheusMetrics(Metrics):
    """
    Prometheus counters for cache and flow events.

    Counters are created on first use as ``{namespace}_{name}_total``, with
    label names taken from the first call's `tags`. Pass a private
    `registry` to keep several caches or test runs apart.

    Requires `prometheus_client` package.
    """

    def __init__(self, *, namespace: str = "lilypad", registry: Any = None) -> None:
        try:
            from prometheus_client import REGISTRY, Counter
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "PrometheusMetrics requires `prometheus_client` to be installed."
            ) from exc

        self._counter_cls = Counter
        self._namespace = namespace
        self._registry = registry if registry is not None else REGISTRY
        self._counters: dict[tuple[str, tuple[str, ...]], Any] = {}

    def _counter(self, name: str, label_names: tuple[str, ...]) -> Any:
        key = (name, label_names)
        counter = self._counters.get(key)
        if counter is None:
            counter = self._counter_cls(
                name,
                COUNTER_DESCRIPTIONS.get(name, f"lilypad {name.replace('_', ' ')}"),
                labelnames=label_names,
                namespace=self._namespace,
                registry=self._registry,
            )
            self._counters[key] = counter
        return counter

    def incr(self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None) -> None:
        labels = dict(tags or {})
        counter = self._counter(name, tuple(sorted(labels)))
        if labels:
            counter.labels(**{k: str(v) for k, v in labels.items()}).inc(value)
        else:
            counter.inc(value)
