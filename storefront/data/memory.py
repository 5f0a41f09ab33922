# =============================================
# File: storefront/data/memory.py
# Purpose: Fixture-backed DataSource for tests and the demo API
# =============================================
from __future__ import annotations

import asyncio
import copy
import json
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Set

from loguru import logger

from storefront.data.source import FilterSpec, UpstreamError


class InMemoryDataSource:
    """
    Tables of plain dict rows, queried through FilterSpec.

    Knobs for tests:
      - latency: seconds to sleep per fetch (exercises concurrent misses)
      - fail(resource): make every fetch of that resource raise UpstreamError
      - calls: Counter of fetches per resource
    Rows are deep-copied on the way out so callers can never mutate the store.
    """

    def __init__(self, tables: Dict[str, List[Dict[str, Any]]] | None = None, latency: float = 0.0) -> None:
        self._tables: Dict[str, List[Dict[str, Any]]] = {k: list(v) for k, v in (tables or {}).items()}
        self.latency = latency
        self.calls: Counter = Counter()
        self._failing: Set[str] = set()

    @classmethod
    def from_json(cls, path: str | Path) -> "InMemoryDataSource":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        logger.info(f"[data] loaded fixture {path} tables={sorted(data)}")
        return cls(data)

    def fail(self, *resources: str) -> None:
        self._failing.update(resources)

    def recover(self, *resources: str) -> None:
        if resources:
            self._failing.difference_update(resources)
        else:
            self._failing.clear()

    def insert(self, resource: str, row: Dict[str, Any]) -> None:
        self._tables.setdefault(resource, []).append(dict(row))

    def update(self, resource: str, row_id: Any, **fields: Any) -> None:
        for row in self._tables.get(resource, []):
            if row.get("id") == row_id:
                row.update(fields)

    # ---------- query ----------

    async def fetch(self, resource: str, spec: FilterSpec) -> List[Dict[str, Any]]:
        self.calls[resource] += 1
        if self.latency:
            await asyncio.sleep(self.latency)
        if resource in self._failing:
            raise UpstreamError(f"backend unavailable for {resource}")
        if resource not in self._tables:
            raise UpstreamError(f"unknown resource {resource}")
        rows = [r for r in self._tables[resource] if self._matches(r, spec)]
        rows = self._ordered(rows, spec.order_by)
        end = None if spec.limit is None else spec.offset + spec.limit
        return copy.deepcopy(rows[spec.offset:end])

    @staticmethod
    def _matches(row: Dict[str, Any], spec: FilterSpec) -> bool:
        if spec.tenant_id is not None and row.get("tenant_id") != spec.tenant_id:
            return False
        for k, v in spec.equals.items():
            if row.get(k) != v:
                return False
        for k, values in spec.any_of.items():
            if row.get(k) not in values:
                return False
        if spec.exclude_ids and row.get("id") in spec.exclude_ids:
            return False
        if spec.in_stock and not (row.get("stock_quantity") or 0) > 0:
            return False
        if spec.active_only and not row.get("active", True):
            return False
        if spec.search:
            needle = spec.search.strip().lower()
            hay: Iterable[str] = (str(row.get(f) or "").lower() for f in spec.search_fields)
            if not any(needle in h for h in hay):
                return False
        return True

    @staticmethod
    def _ordered(rows: List[Dict[str, Any]], order_by: str | None) -> List[Dict[str, Any]]:
        if not order_by:
            return rows
        desc = order_by.startswith("-")
        key = order_by.lstrip("-")
        present = [r for r in rows if r.get(key) is not None]
        missing = [r for r in rows if r.get(key) is None]

        def sort_key(r: Dict[str, Any]):
            v = r[key]
            return v.lower() if isinstance(v, str) else v

        # rows without the field always go last
        return sorted(present, key=sort_key, reverse=desc) + missing
