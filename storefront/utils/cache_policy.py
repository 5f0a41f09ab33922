"""
Cache duration policy for catalog reads.

Reference data that rarely changes (brand / category / vehicle catalogs) is
kept long; anything sensitive to stock, computed counts or ratings is kept
short; personalised recommendations are not cached at all.

Data type               | Operation ids                         | TTL
------------------------+---------------------------------------+--------
Reference catalogs      | brands.list, categories.list,         | 30 min
                        | categories.hierarchy, vehicles.*      |
Dynamic aggregates      | categories.with_counts, brands.stats, | 5 min
                        | categories.search, brands.search,     |
                        | products.detail                       |
Product search          | products.search                       | 10 min
Suggestions             | products.suggestions                  | 1 hour
Recommendations         | (not cached)                          | -

Values are read at call time so tests / env overrides take effect.
"""
from __future__ import annotations

import os

DEFAULT_TTL_REFERENCE = 30 * 60
DEFAULT_TTL_DYNAMIC = 5 * 60
DEFAULT_TTL_SEARCH = 10 * 60
DEFAULT_TTL_SUGGESTION = 60 * 60


def _env_seconds(name: str, default: int) -> float:
    return float(os.getenv(name, str(default)))


def reference_ttl() -> float:
    return _env_seconds("CACHE_TTL_REFERENCE_SECONDS", DEFAULT_TTL_REFERENCE)


def dynamic_ttl() -> float:
    return _env_seconds("CACHE_TTL_DYNAMIC_SECONDS", DEFAULT_TTL_DYNAMIC)


def search_ttl() -> float:
    return _env_seconds("CACHE_TTL_SEARCH_SECONDS", DEFAULT_TTL_SEARCH)


def suggestion_ttl() -> float:
    return _env_seconds("CACHE_TTL_SUGGESTION_SECONDS", DEFAULT_TTL_SUGGESTION)
