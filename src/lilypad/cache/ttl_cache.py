"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

In-memory TTL cache with single-flight loading and stale-on-error fallback.
"""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from collections.abc import Awaitable, Callable, Hashable, Iterable, Mapping
from typing import Any, Generic, TypeVar

from ..errors import InvalidConfigurationError
from ..flow import FlowControlOptions, FlowController
from ..metrics import Metrics, NoOpMetrics
from ..settings import CacheSettings
from ..utils import is_positive_finite, maybe_await, notify
from .types import CacheEntry, CacheErrorContext, CacheRetrieval, GetOrSetOptions

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

logger = logging.getLogger("lilypad.cache")

_BULK_SYNC_ID = ("bulk_sync",)

BulkSyncFn = Callable[[], "Iterable[tuple[Any, Any]] | Mapping[Any, Any] | Awaitable[Any]"]


async def _purge_periodically(ref: "weakref.ref[TtlCache]", interval_s: float) -> None:
    while True:
        await asyncio.sleep(interval_s)
        cache = ref()
        if cache is None:
            return
        cache.purge_expired()
        del cache


class TtlCache(Generic[K, V]):
    """
    Generic in-memory cache with per-entry expiration.

    - ``get_or_set`` loads missing or expired keys through an internal
      ``FlowController`` so concurrent callers share one loader call.
    - Failed loads may fall back to ``error_fn`` or to the previous value.
    - Protected keys survive ``delete``/``clear``/``purge_expired`` unless
      forced.
    - Expired entries can be purged periodically by a background task.

    Example::

        cache = TtlCache[str, dict](ttl_s=30)
        user = await cache.get_or_set(
            "user:1",
            lambda: fetch_user(1),
            return_old_on_error=True,
        )
    """

    def __init__(
        self,
        ttl_s: float = 60.0,
        *,
        auto_cleanup_interval_s: float | None = None,
        default_error_ttl_s: float = 300.0,
        default_bulk_sync_ttl_s: float = 60.0,
        bulk_sync_fn: BulkSyncFn | None = None,
        logger: Any = None,
        flow_control_timeout_s: float | None = None,
        metrics: Metrics | None = None,
        clock: Callable[[], float] = time.time,
        name: str | None = None,
    ) -> None:
        if auto_cleanup_interval_s is not None and not is_positive_finite(
            auto_cleanup_interval_s
        ):
            raise InvalidConfigurationError(
                "auto_cleanup_interval_s must be a positive finite number"
            )

        self.name = name or f"ttl-cache-{id(self):x}"
        self._store: dict[K, CacheEntry] = {}
        self._protected: set[K] = set()
        self._default_ttl_s = ttl_s
        self._default_error_ttl_s = default_error_ttl_s
        self._default_bulk_sync_ttl_s = default_bulk_sync_ttl_s
        self._bulk_sync_fn = bulk_sync_fn
        self._bulk_sync_expires_at_s: float | None = None
        self._clock = clock
        self._metrics = metrics or NoOpMetrics()
        self._logger = logger
        self._flow = FlowController(
            FlowControlOptions(timeout_s=flow_control_timeout_s),
            logger=logger,
            metrics=self._metrics,
        )

        self._cleanup_interval_s = auto_cleanup_interval_s
        self._cleanup_task: asyncio.Task | None = None
        self._disposed = False
        self._ensure_cleanup_task()

    @classmethod
    def from_settings(cls, settings: CacheSettings, **kwargs: Any) -> "TtlCache[K, V]":
        """Build a cache from ``CacheSettings`` plus collaborator kwargs."""
        return cls(
            settings.ttl_s,
            auto_cleanup_interval_s=settings.auto_cleanup_interval_s,
            default_error_ttl_s=settings.default_error_ttl_s,
            default_bulk_sync_ttl_s=settings.default_bulk_sync_ttl_s,
            flow_control_timeout_s=settings.flow_control_timeout_s,
            **kwargs,
        )

    @property
    def logger(self) -> Any:
        return self._logger

    def __len__(self) -> int:
        return len(self._store)

    def keys(self) -> list[K]:
        """Snapshot of every stored key, expired or not."""
        return list(self._store)

    def _ensure_cleanup_task(self) -> None:
        if self._cleanup_interval_s is None or self._disposed:
            return
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Started by the first async call instead.
            return
        self._cleanup_task = loop.create_task(
            _purge_periodically(weakref.ref(self), self._cleanup_interval_s)
        )

    def _stop_cleanup_task(self) -> None:
        if self._cleanup_task is not None:
            if not self._cleanup_task.done():
                self._cleanup_task.cancel()
            self._cleanup_task = None

    def _expiration(self, ttl_s: float | None) -> float:
        return self._clock() + (ttl_s if ttl_s is not None else self._default_ttl_s)

    def set(self, key: K, value: V, ttl_s: float | None = None) -> None:
        """Store `value`, expiring after `ttl_s` seconds (cache default when None)."""
        self._store[key] = CacheEntry(value=value, expires_at_s=self._expiration(ttl_s))

    def get(self, key: K, remove_on_expire: bool = True) -> V | None:
        """
        Return the value for `key` when it is fresh, otherwise None.

        Expired entries are deleted as a side effect unless
        `remove_on_expire` is False.
        """
        entry = self._store.get(key)
        if entry is not None and not entry.is_stale(self._clock()):
            return entry.value
        if entry is not None and remove_on_expire:
            self.delete(key)
        return None

    def get_comprehensive(self, key: K) -> CacheRetrieval:
        """Classify `key` as hit, expired or miss without touching the store."""
        entry = self._store.get(key)
        if entry is None:
            return CacheRetrieval(type="miss")
        kind = "expired" if entry.is_stale(self._clock()) else "hit"
        return CacheRetrieval(type=kind, value=entry.value, expires_at_s=entry.expires_at_s)

    async def get_or_set(
        self,
        key: K,
        loader: Callable[[], Awaitable[V]],
        *,
        ttl_s: float | None = None,
        skip_cache: bool = False,
        return_old_on_error: bool = False,
        error_fn: Callable[[CacheErrorContext], V | None] | None = None,
        error_ttl_s: float | None = None,
        data: Any = None,
    ) -> V:
        """
        Return the cached value for `key`, loading it with `loader` when it is
        missing, expired or `skip_cache` is set.

        Concurrent calls for the same key share a single loader call. When the
        load fails, each caller resolves its own fallback:

        1. a non-None result of ``error_fn(CacheErrorContext)``;
        2. the previous value, if `return_old_on_error` and one existed;
        3. otherwise the loader's error is raised.

        A fallback value is re-cached for `error_ttl_s` (cache default when
        None).
        """
        self._ensure_cleanup_task()
        options = GetOrSetOptions(
            ttl_s=ttl_s,
            skip_cache=skip_cache,
            return_old_on_error=return_old_on_error,
            error_fn=error_fn,
            error_ttl_s=error_ttl_s,
            data=data,
        )

        fetched = self.get_comprehensive(key)
        if not skip_cache and fetched.is_hit:
            self._metrics.incr("cache_hits")
            return fetched.value
        self._metrics.incr("cache_misses")

        def store(value: V) -> None:
            if self._disposed:
                return
            self.set(key, value, ttl_s)
            self._metrics.incr("cache_loads")

        try:
            return await self._flow.execute_fn(
                consumer_id=self.name,
                function_id=("get_or_set", key),
                op=loader,
                on_success=store,
            )
        except Exception as error:
            found, value = self._fallback(key, error, options, fetched)
            if not found:
                raise
            fallback_ttl_s = error_ttl_s if error_ttl_s is not None else self._default_error_ttl_s
            self.set(key, value, fallback_ttl_s)
            self._metrics.incr("cache_fallbacks")
            logger.info("Serving fallback for key %r after load error: %r", key, error)
            await notify(
                self._logger,
                "warn",
                f"[{self.name}] load failed for key {key!r}, serving fallback:",
                repr(error),
            )
            return value

    def _fallback(
        self,
        key: K,
        error: BaseException,
        options: GetOrSetOptions,
        fetched: CacheRetrieval,
    ) -> tuple[bool, Any]:
        if options.error_fn is not None:
            value = options.error_fn(
                CacheErrorContext(key=key, error=error, options=options, cache=self)
            )
            if value is not None:
                return True, value
        if options.return_old_on_error and not fetched.is_miss:
            return True, fetched.value
        return False, None

    def add_protected_keys(self, keys: Iterable[K]) -> "TtlCache[K, V]":
        """Exempt `keys` from non-forced deletion."""
        self._protected.update(keys)
        return self

    def remove_protected_keys(self, keys: Iterable[K]) -> "TtlCache[K, V]":
        for key in keys:
            self._protected.discard(key)
        return self

    def is_protected(self, key: K) -> bool:
        return key in self._protected

    def invalidate(self, key: K) -> None:
        """Mark a fresh entry as expired while keeping its value retrievable."""
        fetched = self.get_comprehensive(key)
        if fetched.is_hit:
            self.set(key, fetched.value, 0)

    def delete(self, key: K, *, force: bool = False) -> None:
        if key in self._protected and not force:
            return
        self._store.pop(key, None)

    def clear(self, *, force: bool = False) -> None:
        for key in list(self._store):
            self.delete(key, force=force)

    def purge_expired(self, *, force: bool = False) -> None:
        """Delete every expired entry, sparing protected keys unless forced."""
        now = self._clock()
        for key, entry in list(self._store.items()):
            if entry.is_stale(now):
                self.delete(key, force=force)

    def bulk_get(self, keys: Iterable[K] | None = None) -> dict[K, V]:
        """Return fresh values for `keys` (every stored key when None)."""
        selected = list(self._store) if keys is None else list(keys)
        out: dict[K, V] = {}
        now = self._clock()
        for key in selected:
            entry = self._store.get(key)
            if entry is None:
                continue
            if entry.is_stale(now):
                self.delete(key)
            else:
                out[key] = entry.value
        return out

    def bulk_set(
        self,
        entries: Mapping[K, V] | Iterable[tuple[K, V]],
        ttl_s: float | None = None,
    ) -> None:
        pairs = entries.items() if isinstance(entries, Mapping) else entries
        for key, value in pairs:
            self.set(key, value, ttl_s)

    def _bulk_sync_fresh(self) -> bool:
        expires_at = self._bulk_sync_expires_at_s
        return expires_at is not None and self._clock() < expires_at

    async def bulk_sync(self, sync_fn: BulkSyncFn | None = None, *, force: bool = False) -> bool:
        """
        Replace the cache contents with the rows returned by `sync_fn`
        (or the constructor's `bulk_sync_fn`).

        Repeated calls within `default_bulk_sync_ttl_s` of the last successful
        sync are no-ops unless `force` is set. Concurrent calls share one sync.

        Returns:
            True when a sync ran, False when it was skipped.
        """
        self._ensure_cleanup_task()
        source = sync_fn or self._bulk_sync_fn
        if source is None:
            raise InvalidConfigurationError("No bulk sync function configured")
        if not force and self._bulk_sync_fresh():
            return False

        async def fetch() -> list[tuple[K, V]]:
            rows = await maybe_await(source())
            return list(rows.items() if isinstance(rows, Mapping) else rows)

        def apply(pairs: list[tuple[K, V]]) -> None:
            if self._disposed:
                return
            self.clear()
            self.bulk_set(pairs)
            self._bulk_sync_expires_at_s = self._clock() + self._default_bulk_sync_ttl_s
            self._metrics.incr("cache_bulk_syncs")
            logger.debug("Bulk sync stored %d entries in %s", len(pairs), self.name)

        await self._flow.execute_fn(
            consumer_id=self.name,
            function_id=_BULK_SYNC_ID,
            op=fetch,
            on_success=apply,
        )
        return True

    async def bulk_async_get(
        self,
        keys: Iterable[K] | None = None,
        *,
        do_sync: bool = False,
        sync_fn: BulkSyncFn | None = None,
    ) -> dict[K, V]:
        """Optionally run ``bulk_sync`` first, then return ``bulk_get(keys)``."""
        if do_sync:
            await self.bulk_sync(sync_fn)
        return self.bulk_get(keys)

    def dispose(self) -> None:
        """Stop background purging and drop every entry. Safe to call twice."""
        self._stop_cleanup_task()
        self._protected.clear()
        self.clear(force=True)
        self._bulk_sync_expires_at_s = None
        self._logger = None
        self._flow.logger = None
        self._disposed = True
