# storefront/routers/deps.py
# Shared FastAPI dependencies: service container, tenant context, Result -> HTTP
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Header, HTTPException, Request

from storefront.services import Storefront, build_storefront
from storefront.utils.cache_keys import TenantContext
from storefront.utils.result import Err, ErrorKind, Result

_STOREFRONT: Optional[Storefront] = None

_STATUS = {
    ErrorKind.UPSTREAM: 502,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_INPUT: 422,
}


def get_storefront() -> Storefront:
    """Process-wide container, built lazily. Tests override this dependency."""
    global _STOREFRONT
    if _STOREFRONT is None:
        _STOREFRONT = build_storefront()
    return _STOREFRONT


def get_tenant(request: Request, x_tenant_id: Optional[str] = Header(default=None)) -> TenantContext:
    tenant = (x_tenant_id or "").strip() or None
    request.state.tenant = tenant
    return TenantContext(tenant_id=tenant)


def unwrap(result: Result, request: Request) -> Dict[str, Any]:
    """Ok -> {"data", "from_cache"}; Err -> HTTPException with a mapped status."""
    ctx = getattr(request.state, "log_context", None) or {}
    if isinstance(result, Err):
        ctx["error_kind"] = result.kind.value
        request.state.log_context = ctx
        raise HTTPException(status_code=_STATUS.get(result.kind, 500), detail=result.message)
    ctx["cache_hit"] = result.from_cache
    request.state.log_context = ctx
    return {"data": result.value, "from_cache": result.from_cache}
