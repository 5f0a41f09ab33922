# =============================================
# File: storefront/services/products.py
# Purpose: Product search (relevance-ranked), vehicle fitment search, detail with rating aggregate, suggestions
# =============================================
from __future__ import annotations

import asyncio
import math
from typing import Any, Dict, List

from loguru import logger

from storefront.data.source import DataSource
from storefront.scoring.relevance import MIN_QUERY_CHARS, score_candidates
from storefront.services.base import CachedService, NotFound
from storefront.services.search_stats import SearchStats
from storefront.utils import cache_policy
from storefront.utils.cache_keys import TenantContext
from storefront.utils.result import Ok, Result, invalid_input
from storefront.utils.text import collapse_ws, collation_key, normalize
from storefront.utils.ttl_cache import TTLCache

SORTS = ("relevance", "newest", "price_asc", "price_desc", "name")


def _sort_rows(rows: List[Dict[str, Any]], sort_by: str) -> List[Dict[str, Any]]:
    if sort_by == "price_asc":
        return sorted(rows, key=lambda r: (r.get("price") is None, r.get("price") or 0))
    if sort_by == "price_desc":
        return sorted(rows, key=lambda r: (r.get("price") is None, -(r.get("price") or 0)))
    if sort_by == "name":
        return sorted(rows, key=lambda r: collation_key(str(r.get("name") or "")))
    # "newest" / relevance without a query: backend order (created_at desc)
    return rows


def _page(items: List[Dict[str, Any]], page: int, limit: int) -> Dict[str, Any]:
    start = (page - 1) * limit
    return {
        "items": items[start:start + limit],
        "total": len(items),
        "page": page,
        "limit": limit,
        "has_more": start + limit < len(items),
    }


class ProductService(CachedService):
    namespace = "products"

    def __init__(self, source: DataSource, cache: TTLCache, stats: SearchStats | None = None) -> None:
        super().__init__(source, cache)
        self.stats = stats or SearchStats()

    async def search_products(
        self,
        ctx: TenantContext,
        query: str = "",
        *,
        category_id: Any = None,
        brand_id: Any = None,
        in_stock: bool = False,
        sort_by: str = "relevance",
        page: int = 1,
        limit: int = 20,
    ) -> Result:
        """
        Returns {"items", "total", "page", "limit", "has_more"}.

        With a query, rows are scored on name + description (100/80/60/+20)
        and "relevance" sorts by that score; without one it is a plain browse.
        """
        q = normalize(query)
        if sort_by not in SORTS:
            sort_by = "relevance"
        page = max(1, int(page))
        limit = max(1, int(limit))
        if q and len(q) < MIN_QUERY_CHARS:
            return Ok({"items": [], "total": 0, "page": page, "limit": limit, "has_more": False})
        self.stats.track(q, ctx.tenant_id)

        equals: Dict[str, Any] = {}
        if category_id is not None:
            equals["category_id"] = category_id
        if brand_id is not None:
            equals["brand_id"] = brand_id
        args = {
            "q": q, "category_id": category_id, "brand_id": brand_id,
            "in_stock": in_stock, "sort_by": sort_by, "page": page, "limit": limit,
        }

        async def load() -> Dict[str, Any]:
            rows = await self._fetch("products", self._spec(
                ctx,
                equals=equals,
                in_stock=in_stock,
                active_only=True,
                search=q or None,
                search_fields=["name", "description", "part_number"],
                order_by="-created_at",
            ))
            if q:
                scored = score_candidates(q, rows)
                items = [c.flatten() for c in scored]
                if sort_by != "relevance":
                    items = _sort_rows(items, sort_by)
            else:
                items = _sort_rows(rows, sort_by)
            return _page(items, page, limit)

        return await self._cached(ctx, "search", args, load, cache_policy.search_ttl())

    async def search_by_vehicle(
        self,
        ctx: TenantContext,
        make: str,
        model: str,
        year: Any,
        engine: str | None = None,
        *,
        category_id: Any = None,
        brand_id: Any = None,
        in_stock: bool = False,
        sort_by: str = "relevance",
        page: int = 1,
        limit: int = 20,
    ) -> Result:
        """
        Active products listed as compatible with make / model / year (and
        engine, when given). "relevance" puts the best-stocked parts first.
        Same paging envelope as search_products; each item carries the
        vehicle it was matched for.
        """
        make, model = collapse_ws(make or ""), collapse_ws(model or "")
        engine = collapse_ws(engine or "") or None
        try:
            year = int(year)
        except (TypeError, ValueError):
            year = 0
        if not make or not model or year <= 0:
            return invalid_input("make, model and a positive year are required")
        if sort_by not in SORTS:
            sort_by = "relevance"
        page = max(1, int(page))
        limit = max(1, int(limit))
        self.stats.track(" ".join(str(p) for p in (make, model, year, engine) if p), ctx.tenant_id)

        fit: Dict[str, Any] = {"make": make, "model": model, "year": year}
        if engine:
            fit["engine"] = engine
        equals: Dict[str, Any] = {}
        # "all" is what the storefront filters send for "no filter"
        if category_id not in (None, "all"):
            equals["category_id"] = category_id
        if brand_id not in (None, "all"):
            equals["brand_id"] = brand_id
        args = {
            **fit, "category_id": equals.get("category_id"), "brand_id": equals.get("brand_id"),
            "in_stock": in_stock, "sort_by": sort_by, "page": page, "limit": limit,
        }

        async def load() -> Dict[str, Any]:
            compat = await self._fetch("vehicle_compatibility", self._spec(ctx, equals=fit))
            ids = list(dict.fromkeys(r["product_id"] for r in compat if r.get("product_id") is not None))
            rows: List[Dict[str, Any]] = []
            if ids:
                rows = await self._fetch("products", self._spec(
                    ctx,
                    equals=equals,
                    any_of={"id": ids},
                    in_stock=in_stock,
                    active_only=True,
                    order_by="-created_at",
                ))
            if sort_by == "relevance":
                # stable: newest first among equal stock
                rows = sorted(rows, key=lambda r: -(r.get("stock_quantity") or 0))
            else:
                rows = _sort_rows(rows, sort_by)
            for r in rows:
                r["vehicle"] = dict(fit)
            return _page(rows, page, limit)

        return await self._cached(ctx, "vehicle_search", args, load, cache_policy.search_ttl())

    async def get_product(self, ctx: TenantContext, product_id: Any) -> Result:
        """Product with average rating / review count. Invalidate after a review write."""
        async def load() -> Dict[str, Any]:
            rows = await self._fetch("products", self._spec(ctx, equals={"id": product_id}, limit=1))
            if not rows:
                raise NotFound(f"product {product_id} not found")
            reviews = await self._fetch("reviews", self._spec(ctx, equals={"product_id": product_id}))
            ratings = [float(r["rating"]) for r in reviews if isinstance(r.get("rating"), (int, float))]
            product = rows[0]
            product["rating"] = round(sum(ratings) / len(ratings), 2) if ratings else 0.0
            product["review_count"] = len(ratings)
            product["in_stock"] = (product.get("stock_quantity") or 0) > 0
            return product

        return await self._cached(ctx, "detail", {"id": product_id}, load, cache_policy.dynamic_ttl())

    def invalidate_product(self, ctx: TenantContext, product_id: Any) -> bool:
        dropped = self.invalidate(ctx, "detail", {"id": product_id})
        logger.info(f"[products] invalidated detail id={product_id} tenant={ctx.label} dropped={dropped}")
        return dropped

    async def suggestions(self, ctx: TenantContext, query: str, limit: int = 10) -> Result:
        """
        Autocomplete: product names (60% of slots), brands (20%), categories
        (20%), plus popular completions for queries of 3 chars or fewer.
        Duplicates (case-insensitive text) are removed, first one wins.
        """
        q = normalize(query)
        if len(q) < MIN_QUERY_CHARS or limit <= 0:
            return Ok([])

        async def load() -> List[Dict[str, Any]]:
            products, brands, categories = await asyncio.gather(
                self._fetch("products", self._spec(ctx, active_only=True, search=q, limit=math.ceil(limit * 0.6))),
                self._fetch("brands", self._spec(ctx, search=q, limit=math.ceil(limit * 0.2))),
                self._fetch("categories", self._spec(ctx, active_only=True, search=q, limit=math.ceil(limit * 0.2))),
            )
            out: List[Dict[str, Any]] = []
            for p in products:
                out.append({"type": "product", "text": p.get("name"), "subtext": p.get("part_number"), "group": "Products"})
            for b in brands:
                out.append({"type": "brand", "text": b.get("name"), "group": "Brands"})
            for c in categories:
                out.append({"type": "category", "text": c.get("name"), "group": "Categories"})
            if len(q) <= 3:
                for term in self.stats.completions(q):
                    out.append({"type": "popular", "text": term, "group": "Popular Searches"})

            seen = set()
            unique: List[Dict[str, Any]] = []
            for s in out:
                key = normalize(s.get("text"))
                if not key or key in seen:
                    continue
                seen.add(key)
                unique.append(s)
            return unique[:limit]

        return await self._cached(ctx, "suggestions", {"q": q, "limit": limit}, load, cache_policy.suggestion_ttl())

    def popular_searches(self, ctx: TenantContext, limit: int = 10) -> List[Dict[str, Any]]:
        return self.stats.popular(limit, ctx.tenant_id)
