# =============================================
# File: storefront/utils/ttl_cache.py
# Purpose: In-process keyed TTL cache with hit/miss/query counters
# =============================================
from __future__ import annotations

import asyncio
import os
import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Dict, Tuple

from loguru import logger

from storefront.utils.cache_keys import namespace_of

# Config
_DEFAULT_TTL = float(os.getenv("CACHE_TTL_SECONDS", "600"))    # 10 minutes

# Result handed to waiters when the loading caller was cancelled
_ABANDONED = object()


@dataclass
class CacheMetrics:
    hits: int = 0
    misses: int = 0
    query_count: int = 0    # upstream loads performed on a miss

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["hit_rate"] = round(self.hit_rate, 4)
        return d


class TTLCache:
    """
    Keyed TTL cache.

    - get() returns a value only while now < expires_at; a stale entry is
      evicted on the lookup that finds it. Reads never extend the expiry.
    - set() always replaces the entry (expires_at = now + ttl).
    - No size bound and no LRU: entries leave by expiry, delete() or clear().
    - None is not a cacheable value (get() uses None for "absent").
    - get_or_load() is the read-through path. A failing loader propagates
      its exception and leaves the key untouched. Concurrent misses on the
      same key share one in-flight load.

    The maps are guarded by a lock, so an instance can be shared by threads;
    the in-flight table is only touched from the event loop.
    """

    def __init__(self, default_ttl: float | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._default_ttl = float(default_ttl if default_ttl is not None else _DEFAULT_TTL)
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (expires_at, value)
        self._store: Dict[str, Tuple[float, Any]] = {}
        self._metrics = CacheMetrics()
        self._by_namespace: Dict[str, CacheMetrics] = {}
        self._inflight: Dict[str, asyncio.Future] = {}

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def _ns_metrics(self, key: str) -> CacheMetrics:
        ns = namespace_of(key)
        m = self._by_namespace.get(ns)
        if m is None:
            m = self._by_namespace[ns] = CacheMetrics()
        return m

    # ---------- basic operations ----------

    def get(self, key: str) -> Any | None:
        now = self._clock()
        with self._lock:
            item = self._store.get(key)
            if item is not None and now < item[0]:
                self._metrics.hits += 1
                self._ns_metrics(key).hits += 1
                return item[1]
            if item is not None:
                del self._store[key]
            self._metrics.misses += 1
            self._ns_metrics(key).misses += 1
            return None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        if value is None:
            raise ValueError("None cannot be cached")
        duration = self._default_ttl if ttl is None else float(ttl)
        expires_at = self._clock() + duration
        with self._lock:
            self._store[key] = (expires_at, value)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self, namespace: str | None = None) -> int:
        """Drop every entry, or only the keys of one namespace. Returns the count removed."""
        with self._lock:
            if namespace is None:
                n = len(self._store)
                self._store.clear()
                return n
            dead = [k for k in self._store if namespace_of(k) == namespace]
            for k in dead:
                del self._store[k]
            return len(dead)

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for exp, _ in self._store.values() if now < exp)

    def __contains__(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            item = self._store.get(key)
            return item is not None and now < item[0]

    # ---------- metrics ----------

    def metrics(self) -> Dict[str, Any]:
        with self._lock:
            out = self._metrics.as_dict()
            out["namespaces"] = {ns: m.as_dict() for ns, m in sorted(self._by_namespace.items())}
        out["entries"] = len(self)
        return out

    def reset_metrics(self) -> None:
        with self._lock:
            self._metrics = CacheMetrics()
            self._by_namespace.clear()

    # ---------- read-through ----------

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
    ) -> Tuple[Any, bool]:
        """
        Return (value, from_cache). On a miss, await loader() and store its
        result. Loader exceptions propagate and nothing is stored. If the
        caller doing the load is cancelled, its waiters retry with their own
        loader instead of inheriting the cancellation.
        """
        while True:
            cached = self.get(key)
            if cached is not None:
                return cached, True

            pending = self._inflight.get(key)
            if pending is None:
                break
            # another caller is already loading this key
            value = await asyncio.shield(pending)
            if value is not _ABANDONED:
                return value, False
            logger.debug(f"[cache] load abandoned by its caller, retrying key={key}")

        fut: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[key] = fut
        try:
            with self._lock:
                self._metrics.query_count += 1
                self._ns_metrics(key).query_count += 1
            try:
                value = await loader()
            except asyncio.CancelledError:
                fut.set_result(_ABANDONED)
                raise
            except Exception as exc:
                fut.set_exception(exc)
                fut.exception()     # mark retrieved when nobody else is waiting
                raise
            if value is not None:
                self.set(key, value, ttl)
            else:
                logger.debug(f"[cache] loader returned None, not cached key={key}")
            fut.set_result(value)
            return value, False
        finally:
            self._inflight.pop(key, None)
