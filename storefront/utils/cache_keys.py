# =============================================
# File: storefront/utils/cache_keys.py
# Purpose: Deterministic, tenant-scoped cache keys
# =============================================
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class TenantContext:
    """
    Request-scoped tenant identity.

    Built once at the call boundary (HTTP header, job argument...) and handed
    to every service call. tenant_id=None is the single-tenant deployment.
    """
    tenant_id: Optional[str] = None

    @property
    def label(self) -> str:
        # for logs only, never for keys
        return self.tenant_id or "default"


DEFAULT_TENANT = TenantContext()


def _canonical(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def make_key(operation: str, args: Dict[str, Any] | None, ctx: TenantContext) -> str:
    """
    Build "<operation>:<canonical json of {args, tenant}>".

    - operation is a dotted identifier whose first segment is the namespace
      ("categories.search" -> "categories").
    - args are serialised with sorted keys, so {"a":1,"b":2} and
      {"b":2,"a":1} give the same key.
    - the tenant lives inside the JSON payload: null for the single-tenant
      case, so it cannot collide with a tenant whose id is "default".
    """
    if not operation or ":" in operation:
        raise ValueError(f"invalid cache operation id: {operation!r}")
    return f"{operation}:{_canonical({'args': args or {}, 'tenant': ctx.tenant_id})}"


def namespace_of(key: str) -> str:
    operation = key.partition(":")[0]
    return operation.partition(".")[0]
