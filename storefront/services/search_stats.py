# =============================================
# File: storefront/services/search_stats.py
# Purpose: Popular-search tracking (in-process, per tenant)
# =============================================
from __future__ import annotations

import threading
from collections import Counter
from typing import Dict, List, Optional

from storefront.utils.text import normalize

# Seed list for an empty store (automotive parts catalog)
STATIC_POPULAR: List[Dict[str, object]] = [
    {"term": "brake pads", "count": 1250},
    {"term": "engine oil", "count": 980},
    {"term": "air filter", "count": 875},
    {"term": "spark plugs", "count": 720},
    {"term": "tires", "count": 650},
    {"term": "battery", "count": 580},
    {"term": "alternator", "count": 520},
    {"term": "brake rotors", "count": 480},
    {"term": "transmission fluid", "count": 420},
    {"term": "radiator", "count": 380},
]

COMPLETION_TERMS = [
    "brake pads", "brake rotors", "brake fluid",
    "engine oil", "engine filter", "engine parts",
    "air filter", "air conditioning", "alternator",
    "spark plugs", "suspension", "steering",
    "tires", "transmission", "timing belt",
    "battery", "belts", "brake lines",
]


class SearchStats:
    """
    Query counters keyed by tenant:
    - track(): normalised queries longer than 2 chars are counted
    - popular(): tracked queries (top half of the slots) + static list, deduped
    Process-lifetime only; reset() clears everything.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: Dict[Optional[str], Counter] = {}
        self.total_searches = 0

    def track(self, query: str, tenant_id: Optional[str] = None) -> None:
        q = normalize(query)
        if len(q) <= 2:
            return
        with self._lock:
            self._counts.setdefault(tenant_id, Counter())[q] += 1
            self.total_searches += 1

    def popular(self, limit: int = 10, tenant_id: Optional[str] = None) -> List[Dict[str, object]]:
        if limit <= 0:
            return []
        with self._lock:
            tracked = self._counts.get(tenant_id, Counter()).most_common(-(-limit // 2))
        combined = [{"term": t, "count": n} for t, n in tracked]
        have = {c["term"] for c in combined}
        for item in STATIC_POPULAR:
            if item["term"] not in have:
                combined.append(dict(item))
        return combined[:limit]

    @staticmethod
    def completions(prefix: str, limit: int = 3) -> List[str]:
        p = normalize(prefix)
        if not p:
            return []
        return [t for t in COMPLETION_TERMS if t.startswith(p)][:limit]

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self.total_searches = 0
