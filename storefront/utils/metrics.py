# =============================================
# File: storefront/utils/metrics.py
# Purpose: In-process request counters, latency histogram and per-route timings for /metrics
# =============================================
from __future__ import annotations
from bisect import bisect_left
from collections import Counter, deque
from typing import Any, Deque, Dict, List, Optional
import threading
import time

from storefront.utils.ttl_cache import TTLCache

_lock = threading.Lock()

_counters: Dict[str, int] = {
    "requests_total": 0,
    "errors_total": 0,           # 5xx
    "upstream_errors_total": 0,  # 502 from a failed backend read
}
_status_classes: Counter = Counter()   # "2xx" / "4xx" / "5xx"
_by_tenant: Counter = Counter()

# Cache outcome as seen by cache-backed endpoints
_cache_outcomes: Dict[str, int] = {"hit": 0, "miss": 0}

# Catalog reads are mostly served from memory: fine-grained low buckets
_latency_buckets: List[int] = [5, 10, 25, 50, 100, 250, 500, 1000]
_latency_counts: List[int] = [0] * (len(_latency_buckets) + 1)  # last is +Inf

# Keyed by route template ("GET /products/{product_id}"), so ids do not explode the map
_MAX_SAMPLES = 1000
_route_samples: Dict[str, Deque[float]] = {}
_route_counts: Counter = Counter()


def _percentile(values: List[float], q: float) -> float:
    if not values:
        return 0.0
    xs = sorted(values)
    return xs[int(q * (len(xs) - 1))]


def record_request(
    latency_ms: int,
    status: int,
    cache_hit: Optional[bool] = None,
    tenant: Optional[str] = None,
) -> None:
    with _lock:
        _counters["requests_total"] += 1
        if status >= 500:
            _counters["errors_total"] += 1
        if status == 502:
            _counters["upstream_errors_total"] += 1
        _status_classes[f"{status // 100}xx"] += 1
        _by_tenant[tenant or "default"] += 1
        if cache_hit is not None:
            _cache_outcomes["hit" if cache_hit else "miss"] += 1
        _latency_counts[bisect_left(_latency_buckets, int(latency_ms))] += 1


def record_endpoint(method: str, path: str, latency_ms: float) -> None:
    key = f"{method.upper()} {path}"
    with _lock:
        _route_counts[key] += 1
        _route_samples.setdefault(key, deque(maxlen=_MAX_SAMPLES)).append(float(latency_ms))


def snapshot(cache: TTLCache | None = None) -> Dict[str, Any]:
    """Counters + histogram + per-route avg/p50/p95; cache statistics when a cache is given."""
    with _lock:
        routes: Dict[str, Dict[str, float]] = {}
        for key, samples in _route_samples.items():
            xs = list(samples)
            routes[key] = {
                "count": _route_counts[key],
                "avg_latency_ms": sum(xs) / len(xs) if xs else 0.0,
                "p50_latency_ms": _percentile(xs, 0.5),
                "p95_latency_ms": _percentile(xs, 0.95),
            }
        out: Dict[str, Any] = {
            "counters": dict(_counters),
            "status_classes": dict(_status_classes),
            "tenants": dict(_by_tenant),
            "cache_outcomes": dict(_cache_outcomes),
            "latency_ms": {
                "buckets": list(_latency_buckets) + ["+Inf"],
                "counts": list(_latency_counts),
            },
            "performance": {
                "endpoints": routes,
                "generated_at": time.time(),
            },
        }
    if cache is not None:
        out["cache"] = cache.metrics()
    return out


def reset() -> None:
    with _lock:
        for k in _counters:
            _counters[k] = 0
        _status_classes.clear()
        _by_tenant.clear()
        _cache_outcomes.update(hit=0, miss=0)
        _latency_counts[:] = [0] * len(_latency_counts)
        _route_samples.clear()
        _route_counts.clear()
