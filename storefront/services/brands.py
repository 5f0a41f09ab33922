# =============================================
# File: storefront/services/brands.py
# Purpose: Brand catalog reads (cached) with relevance-ranked search
# =============================================
from __future__ import annotations

from typing import Any, Dict, List, Optional

from storefront.scoring.relevance import MIN_QUERY_CHARS, score_candidates
from storefront.services.base import CachedService, NotFound
from storefront.utils import cache_policy
from storefront.utils.cache_keys import TenantContext
from storefront.utils.result import Ok, Result
from storefront.utils.text import normalize


class BrandService(CachedService):
    namespace = "brands"

    async def list_brands(self, ctx: TenantContext, limit: Optional[int] = None) -> Result:
        async def load() -> List[Dict[str, Any]]:
            return await self._fetch("brands", self._spec(ctx, order_by="name", limit=limit))

        return await self._cached(ctx, "list", {"limit": limit}, load, cache_policy.reference_ttl())

    async def get_brand(self, ctx: TenantContext, brand_id: Any) -> Result:
        """Brand plus its active products (stock-sensitive, short TTL)."""
        async def load() -> Dict[str, Any]:
            rows = await self._fetch("brands", self._spec(ctx, equals={"id": brand_id}, limit=1))
            if not rows:
                raise NotFound(f"brand {brand_id} not found")
            products = await self._fetch(
                "products",
                self._spec(ctx, equals={"brand_id": brand_id}, active_only=True, order_by="-created_at"),
            )
            brand = rows[0]
            brand["products"] = [
                {**p, "in_stock": (p.get("stock_quantity") or 0) > 0} for p in products
            ]
            brand["product_count"] = len(products)
            return brand

        return await self._cached(ctx, "detail", {"id": brand_id}, load, cache_policy.dynamic_ttl())

    async def brand_stats(self, ctx: TenantContext, brand_id: Any) -> Result:
        async def load() -> Dict[str, Any]:
            products = await self._fetch(
                "products", self._spec(ctx, equals={"brand_id": brand_id}, active_only=True)
            )
            prices = [float(p["price"]) for p in products if isinstance(p.get("price"), (int, float))]
            total = len(products)
            in_stock = sum(1 for p in products if (p.get("stock_quantity") or 0) > 0)
            return {
                "total_products": total,
                "in_stock_products": in_stock,
                "out_of_stock_products": total - in_stock,
                "avg_price": round(sum(prices) / len(prices), 2) if prices else 0.0,
                "min_price": min(prices) if prices else 0.0,
                "max_price": max(prices) if prices else 0.0,
                "stock_percentage": round(in_stock / total * 100) if total else 0,
            }

        return await self._cached(ctx, "stats", {"id": brand_id}, load, cache_policy.dynamic_ttl())

    async def search_brands(self, ctx: TenantContext, query: str, limit: Optional[int] = None) -> Result:
        q = normalize(query)
        if len(q) < MIN_QUERY_CHARS:
            # search-as-you-type: one character is not an error
            return Ok([])

        async def load() -> List[Dict[str, Any]]:
            rows = await self._fetch(
                "brands", self._spec(ctx, search=q, search_fields=["name", "description"])
            )
            ranked = score_candidates(q, rows, min_score=1)
            if limit is not None:
                ranked = ranked[:limit]
            return [c.flatten() for c in ranked]

        return await self._cached(ctx, "search", {"q": q, "limit": limit}, load, cache_policy.dynamic_ttl())
