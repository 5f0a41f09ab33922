# storefront/services/vehicles.py
# Vehicle reference data (makes / models / years) and fuzzy model search
from __future__ import annotations

from typing import Any, Dict, List, Optional

from storefront.scoring.relevance import MIN_QUERY_CHARS, TERM_THRESHOLD, score_terms
from storefront.services.base import CachedService
from storefront.utils import cache_policy
from storefront.utils.cache_keys import TenantContext
from storefront.utils.result import Ok, Result
from storefront.utils.text import normalize


class VehicleService(CachedService):
    namespace = "vehicles"

    async def makes(self, ctx: TenantContext) -> Result:
        async def load() -> List[Dict[str, Any]]:
            return await self._fetch("vehicle_makes", self._spec(ctx, order_by="name"))

        return await self._cached(ctx, "makes", {}, load, cache_policy.reference_ttl())

    async def models_by_make(self, ctx: TenantContext, make_id: Any) -> Result:
        async def load() -> List[Dict[str, Any]]:
            return await self._fetch(
                "vehicle_models", self._spec(ctx, equals={"make_id": make_id}, order_by="name")
            )

        return await self._cached(ctx, "models", {"make_id": make_id}, load, cache_policy.reference_ttl())

    async def years_by_model(self, ctx: TenantContext, model_id: Any) -> Result:
        async def load() -> List[Dict[str, Any]]:
            return await self._fetch(
                "vehicle_years", self._spec(ctx, equals={"model_id": model_id}, order_by="-year")
            )

        return await self._cached(ctx, "years", {"model_id": model_id}, load, cache_policy.reference_ttl())

    async def search_models(self, ctx: TenantContext, query: str, limit: Optional[int] = 20) -> Result:
        """
        Multi-term search over model names ("corolla hybrid"). Candidates that
        only weakly match one of several terms fall under the 0.3 threshold.
        """
        q = normalize(query)
        if len(q) < MIN_QUERY_CHARS:
            return Ok([])

        async def load() -> List[Dict[str, Any]]:
            models = await self._fetch("vehicle_models", self._spec(ctx, order_by="name"))
            makes = await self._fetch("vehicle_makes", self._spec(ctx))
            make_names = {m.get("id"): m.get("name") for m in makes}
            ranked = score_terms(q, models, field="name", threshold=TERM_THRESHOLD)
            if limit is not None:
                ranked = ranked[:limit]
            out = []
            for c in ranked:
                row = c.flatten()
                row["make_name"] = make_names.get(row.get("make_id"))
                out.append(row)
            return out

        return await self._cached(ctx, "search", {"q": q, "limit": limit}, load, cache_policy.reference_ttl())
