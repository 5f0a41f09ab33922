# =============================================
# File: storefront/data/source.py
# Purpose: Contract of the upstream catalog backend (opaque async fetch)
# =============================================
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field


class UpstreamError(RuntimeError):
    """The backend is unavailable or rejected the request."""


class FilterSpec(BaseModel):
    """
    Backend-neutral description of a read.

    - tenant_id: rows are restricted to this tenant when set.
    - equals / any_of: field == value / field in values.
    - search + search_fields: case-insensitive substring on any of the fields.
    - in_stock / active_only: stock_quantity > 0 / active flag.
    - order_by: field name, "-" prefix for descending ("-created_at").
    """
    tenant_id: Optional[str] = None
    equals: Dict[str, Any] = Field(default_factory=dict)
    any_of: Dict[str, List[Any]] = Field(default_factory=dict)
    exclude_ids: List[Any] = Field(default_factory=list)
    search: Optional[str] = None
    search_fields: List[str] = Field(default_factory=lambda: ["name"])
    in_stock: bool = False
    active_only: bool = False
    order_by: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=0)
    offset: int = Field(default=0, ge=0)


class DataSource(Protocol):
    async def fetch(self, resource: str, spec: FilterSpec) -> List[Dict[str, Any]]:
        """Return the matching rows or raise UpstreamError."""
        ...
