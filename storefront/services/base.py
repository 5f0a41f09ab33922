# =============================================
# File: storefront/services/base.py
# Purpose: Shared read-through plumbing for the catalog services
# =============================================
from __future__ import annotations

import copy
from typing import Any, Awaitable, Callable, Dict, List

from loguru import logger

from storefront.data.source import DataSource, FilterSpec, UpstreamError
from storefront.utils.cache_keys import TenantContext, make_key
from storefront.utils.result import Ok, Result, not_found, upstream_error
from storefront.utils.ttl_cache import TTLCache


class NotFound(LookupError):
    """Raised inside a loader when the requested entity does not exist."""


class CachedService:
    """
    Base for services that read the catalog through the shared TTL cache.

    Every backend read goes through _spec() (tenant always applied) and every
    cached read through _cached() (tenant always part of the key).
    """

    namespace: str = ""

    def __init__(self, source: DataSource, cache: TTLCache) -> None:
        self.source = source
        self.cache = cache

    def _spec(self, ctx: TenantContext, **kw: Any) -> FilterSpec:
        return FilterSpec(tenant_id=ctx.tenant_id, **kw)

    async def _fetch(self, resource: str, spec: FilterSpec) -> List[Dict[str, Any]]:
        try:
            return await self.source.fetch(resource, spec)
        except UpstreamError:
            raise
        except Exception as e:
            # normalise backend driver errors into our taxonomy
            raise UpstreamError(f"{resource}: {e}") from e

    async def _cached(
        self,
        ctx: TenantContext,
        operation: str,
        args: Dict[str, Any],
        loader: Callable[[], Awaitable[Any]],
        ttl: float,
    ) -> Result:
        key = make_key(f"{self.namespace}.{operation}", args, ctx)
        try:
            value, from_cache = await self.cache.get_or_load(key, loader, ttl=ttl)
        except UpstreamError as e:
            logger.warning(f"[{self.namespace}] {operation} failed tenant={ctx.label}: {e}")
            return upstream_error(str(e))
        except NotFound as e:
            return not_found(str(e) or "not found")
        # callers get their own copy; the cached entry stays untouched
        return Ok(copy.deepcopy(value), from_cache=from_cache)

    def invalidate(self, ctx: TenantContext, operation: str, args: Dict[str, Any]) -> bool:
        return self.cache.delete(make_key(f"{self.namespace}.{operation}", args, ctx))

    def clear_cache(self) -> int:
        n = self.cache.clear(self.namespace)
        logger.info(f"[{self.namespace}] cache cleared entries={n}")
        return n

