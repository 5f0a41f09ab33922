# =============================================
# File: storefront/services/recommendations.py
# Purpose: Personalised / trending / similar / related / cart recommendations
# =============================================
from __future__ import annotations

import os
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from loguru import logger

from storefront.data.source import DataSource, FilterSpec, UpstreamError
from storefront.scoring.models import ScoredCandidate, is_available
from storefront.scoring.preferences import (
    BROWSING_WINDOW,
    PURCHASE_WINDOW,
    UserPreferenceProfile,
    build_preference_profile,
    category_filters,
    merge_with_fallback,
    rank_by_preferences,
    top_categories,
)
from storefront.scoring.similarity import SimilarityScorer, rank_similar
from storefront.scoring.trending import DecayedActivityScorer, TrendingScorer, rank_trending
from storefront.utils.cache_keys import TenantContext
from storefront.utils.result import Ok, Result, not_found, upstream_error

DEFAULT_LIMIT = int(os.getenv("RECOMMEND_DEFAULT_LIMIT", "12"))
RELATED_PER_CART_ITEM = 3


def _flatten(items: Iterable[ScoredCandidate], score_field: str = "score") -> List[Dict[str, Any]]:
    return [c.flatten(score_field=score_field, tag_field="relation_type") for c in items]


class RecommendationService:
    """
    Recommendations are personal (or depend on per-request exclusions), so
    nothing here goes through the cache; every call reads the backend.
    """

    def __init__(
        self,
        source: DataSource,
        *,
        trending_scorer: TrendingScorer | None = None,
        similarity_scorer: SimilarityScorer | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.source = source
        self.trending_scorer = trending_scorer or DecayedActivityScorer()
        self.similarity_scorer = similarity_scorer or SimilarityScorer.from_env()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _fetch(self, resource: str, spec: FilterSpec) -> List[Dict[str, Any]]:
        try:
            return await self.source.fetch(resource, spec)
        except UpstreamError:
            raise
        except Exception as e:
            raise UpstreamError(f"{resource}: {e}") from e

    async def _products_by_id(self, ctx: TenantContext, ids: Iterable[Any]) -> Dict[Any, Dict[str, Any]]:
        ids = list(dict.fromkeys(ids))
        if not ids:
            return {}
        rows = await self._fetch("products", FilterSpec(tenant_id=ctx.tenant_id, any_of={"id": ids}))
        return {r.get("id"): r for r in rows}

    # ---------- trending ----------

    async def _trending(self, ctx: TenantContext, exclude_ids: Iterable[Any], limit: int) -> List[ScoredCandidate]:
        if limit <= 0:
            return []
        excluded = list(dict.fromkeys(exclude_ids or ()))
        # newest first, 2x oversampled so scoring has room to reorder
        window = await self._fetch("products", FilterSpec(
            tenant_id=ctx.tenant_id,
            exclude_ids=excluded,
            in_stock=True,
            active_only=True,
            order_by="-created_at",
            limit=limit * 2,
        ))
        return rank_trending(window, excluded, limit, scorer=self.trending_scorer, now=self._clock())

    async def trending(self, ctx: TenantContext, exclude_ids: Iterable[Any] = (), limit: int = DEFAULT_LIMIT) -> Result:
        try:
            items = await self._trending(ctx, exclude_ids, limit)
        except UpstreamError as e:
            logger.warning(f"[recommend] trending failed tenant={ctx.label}: {e}")
            return upstream_error(str(e))
        return Ok(_flatten(items, "trending_score"))

    # ---------- personalised ----------

    async def preference_profile(self, ctx: TenantContext, user_id: str) -> UserPreferenceProfile:
        """Fold recent browsing / purchases / wishlist into a throwaway profile."""
        browsing = await self._fetch("browsing_history", FilterSpec(
            tenant_id=ctx.tenant_id, equals={"user_id": user_id}, order_by="-viewed_at", limit=BROWSING_WINDOW,
        ))
        purchases = await self._fetch("order_items", FilterSpec(
            tenant_id=ctx.tenant_id, equals={"user_id": user_id}, order_by="-created_at", limit=PURCHASE_WINDOW,
        ))
        wishlist = await self._fetch("wishlists", FilterSpec(
            tenant_id=ctx.tenant_id, equals={"user_id": user_id},
        ))
        products = await self._products_by_id(
            ctx, [r.get("product_id") for r in browsing + purchases + wishlist]
        )

        def resolve(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
            return [products[r["product_id"]] for r in rows if r.get("product_id") in products]

        return build_preference_profile(resolve(browsing), resolve(purchases), resolve(wishlist))

    async def _personalized(
        self, ctx: TenantContext, user_id: str, exclude_ids: List[Any], limit: int
    ) -> tuple[List[ScoredCandidate], List[str]]:
        profile = await self.preference_profile(ctx, user_id)
        preferred = top_categories(profile)
        if not preferred:
            return [], []
        window = dict(
            tenant_id=ctx.tenant_id,
            exclude_ids=exclude_ids,
            in_stock=True,
            active_only=True,
            order_by="-created_at",
        )
        groups = category_filters(profile, preferred)
        if groups is None:
            # nested category objects: rank a wider unfiltered window instead
            candidates = await self._fetch("products", FilterSpec(**window, limit=limit * 3 * len(preferred)))
        else:
            candidates = []
            for field_name, values in groups.items():
                candidates += await self._fetch("products", FilterSpec(
                    **window, any_of={field_name: values}, limit=limit * 3,
                ))
            if len(groups) > 1:
                candidates.sort(key=lambda r: str(r.get("created_at") or ""), reverse=True)
        return rank_by_preferences(profile, candidates, exclude_ids, limit), preferred

    async def personalized(
        self,
        ctx: TenantContext,
        user_id: Optional[str] = None,
        *,
        exclude_ids: Iterable[Any] = (),
        limit: int = DEFAULT_LIMIT,
    ) -> Result:
        """
        Personalised picks first, trending backfill for the remaining slots.
        Always returns `limit` items when the catalog has that many eligible
        products. A failing history read degrades to trending only; a failing
        trending read is an upstream error.
        """
        excluded = list(dict.fromkeys(exclude_ids or ()))
        personal: List[ScoredCandidate] = []
        preferred: List[str] = []
        degraded = False
        if user_id and limit > 0:
            try:
                personal, preferred = await self._personalized(ctx, user_id, excluded, limit)
            except UpstreamError as e:
                logger.warning(f"[recommend] history unavailable user={user_id} tenant={ctx.label}: {e}")
                degraded = True

        fallback: List[ScoredCandidate] = []
        remaining = limit - len(personal)
        if remaining > 0:
            try:
                fallback = await self._trending(ctx, excluded + [c.id for c in personal], remaining)
            except UpstreamError as e:
                logger.warning(f"[recommend] trending backfill failed tenant={ctx.label}: {e}")
                return upstream_error(str(e))

        merged = merge_with_fallback(personal, fallback, limit)
        logger.info(
            f"[recommend] user={user_id} tenant={ctx.label} limit={limit} "
            f"personal={len(personal)} trending={len(merged) - len(personal)}"
        )
        return Ok({
            "items": _flatten(merged),
            "metadata": {
                "algorithm": "hybrid",
                "preferred_categories": preferred,
                "personalized_count": len(personal),
                "trending_count": len(merged) - len(personal),
                "degraded": degraded,
            },
        })

    # ---------- product-page recommendations ----------

    async def similar(self, ctx: TenantContext, product_id: Any, limit: int = 8) -> Result:
        try:
            rows = await self._fetch("products", FilterSpec(tenant_id=ctx.tenant_id, equals={"id": product_id}, limit=1))
            if not rows:
                return not_found(f"product {product_id} not found")
            target = rows[0]
            pool = await self._fetch("products", FilterSpec(
                tenant_id=ctx.tenant_id,
                equals={"category_id": target.get("category_id")},
                exclude_ids=[product_id],
                in_stock=True,
                active_only=True,
                order_by="-created_at",
                limit=limit * 2,
            ))
        except UpstreamError as e:
            logger.warning(f"[recommend] similar failed id={product_id}: {e}")
            return upstream_error(str(e))
        ranked = rank_similar(target, pool, limit=limit, scorer=self.similarity_scorer)
        return Ok(_flatten(ranked, "similarity_score"))

    async def _related(self, ctx: TenantContext, product_id: Any, limit: int) -> List[ScoredCandidate]:
        own = await self._fetch("order_items", FilterSpec(tenant_id=ctx.tenant_id, equals={"product_id": product_id}))
        order_ids = list(dict.fromkeys(r.get("order_id") for r in own))
        if not order_ids:
            return []
        lines = await self._fetch("order_items", FilterSpec(tenant_id=ctx.tenant_id, any_of={"order_id": order_ids}))
        # co-occurrence count, first seen wins ties
        together = Counter(r.get("product_id") for r in lines if r.get("product_id") != product_id)
        products = await self._products_by_id(ctx, together)
        out = [
            ScoredCandidate(entity=products[pid], score=float(n), match_type="frequently-bought-together")
            for pid, n in together.most_common()
            if pid in products and is_available(products[pid])
        ]
        return out[:limit]

    async def related(self, ctx: TenantContext, product_id: Any, limit: int = 8) -> Result:
        try:
            items = await self._related(ctx, product_id, limit)
        except UpstreamError as e:
            logger.warning(f"[recommend] related failed id={product_id}: {e}")
            return upstream_error(str(e))
        return Ok(_flatten(items, "relation_strength"))

    async def cart(self, ctx: TenantContext, cart_product_ids: Iterable[Any], limit: int = 6) -> Result:
        """Cross-sell for a cart: related items of each line, deduped, cart items removed."""
        in_cart = list(dict.fromkeys(cart_product_ids or ()))
        if not in_cart:
            return Ok([])
        picked: List[ScoredCandidate] = []
        seen = set(in_cart)
        failures = 0
        for pid in in_cart:
            try:
                related = await self._related(ctx, pid, RELATED_PER_CART_ITEM)
            except UpstreamError as e:
                logger.warning(f"[recommend] cart related failed id={pid}: {e}")
                failures += 1
                continue
            for c in related:
                if c.id in seen:
                    continue
                seen.add(c.id)
                picked.append(c)
        if failures == len(in_cart):
            return upstream_error("related products unavailable for every cart item")
        return Ok(_flatten(picked[:limit], "relation_strength"))
