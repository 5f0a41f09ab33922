# =============================================
# File: storefront/services/categories.py
# Purpose: Category catalog reads, counts, hierarchy and relevance search
# =============================================
from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List

from storefront.scoring.relevance import MIN_QUERY_CHARS, score_candidates
from storefront.services.base import CachedService, NotFound
from storefront.utils import cache_policy
from storefront.utils.cache_keys import TenantContext
from storefront.utils.result import Ok, Result
from storefront.utils.text import collation_key, normalize

_NO_SORT_ORDER = 999


def build_hierarchy(categories: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Nest categories under parent_id. Orphans (unknown parent) are dropped,
    siblings are ordered by sort_order (missing = 999) then name.
    """
    nodes = {c["id"]: {**c, "children": []} for c in categories if "id" in c}
    roots: List[Dict[str, Any]] = []
    for c in categories:
        node = nodes.get(c.get("id"))
        if node is None:
            continue
        parent_id = c.get("parent_id")
        if parent_id is None:
            roots.append(node)
        elif parent_id in nodes:
            nodes[parent_id]["children"].append(node)

    def _sort(level: List[Dict[str, Any]]) -> None:
        level.sort(key=lambda n: (
            n.get("sort_order") if n.get("sort_order") is not None else _NO_SORT_ORDER,
            collation_key(str(n.get("name") or "")),
        ))
        for n in level:
            _sort(n["children"])

    _sort(roots)
    return roots


class CategoryService(CachedService):
    namespace = "categories"

    async def _all(self, ctx: TenantContext) -> List[Dict[str, Any]]:
        return await self._fetch("categories", self._spec(ctx, active_only=True, order_by="name"))

    async def list_categories(self, ctx: TenantContext) -> Result:
        return await self._cached(ctx, "list", {}, lambda: self._all(ctx), cache_policy.reference_ttl())

    async def get_category(self, ctx: TenantContext, category_id: Any) -> Result:
        async def load() -> Dict[str, Any]:
            rows = await self._fetch("categories", self._spec(ctx, equals={"id": category_id}, limit=1))
            if not rows:
                raise NotFound(f"category {category_id} not found")
            return rows[0]

        return await self._cached(ctx, "detail", {"id": category_id}, load, cache_policy.reference_ttl())

    async def list_with_counts(self, ctx: TenantContext) -> Result:
        """Categories with live product counts: short TTL, counts move with stock."""
        async def load() -> List[Dict[str, Any]]:
            categories = await self._all(ctx)
            products = await self._fetch("products", self._spec(ctx, active_only=True))
            counts = Counter(p.get("category_id") for p in products)
            return [{**c, "product_count": counts.get(c.get("id"), 0)} for c in categories]

        return await self._cached(ctx, "with_counts", {}, load, cache_policy.dynamic_ttl())

    async def hierarchy(self, ctx: TenantContext) -> Result:
        async def load() -> List[Dict[str, Any]]:
            return build_hierarchy(await self._all(ctx))

        return await self._cached(ctx, "hierarchy", {}, load, cache_policy.reference_ttl())

    async def search_categories(self, ctx: TenantContext, query: str) -> Result:
        q = normalize(query)
        if len(q) < MIN_QUERY_CHARS:
            return Ok([])

        async def load() -> List[Dict[str, Any]]:
            rows = await self._fetch(
                "categories",
                self._spec(ctx, active_only=True, search=q, search_fields=["name", "description", "meta_title"]),
            )
            # rows matched only on meta_title stay in, ranked last (score 0)
            return [c.flatten() for c in score_candidates(q, rows)]

        return await self._cached(ctx, "search", {"q": q}, load, cache_policy.dynamic_ttl())
