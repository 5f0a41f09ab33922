# =============================================
# File: storefront/routers/metrics.py
# Purpose: Expose request metrics and cache statistics as JSON
# =============================================
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends

from storefront.routers.deps import get_storefront
from storefront.services import Storefront
from storefront.utils import metrics

router = APIRouter(tags=["metrics"])

@router.get("/metrics")
def get_metrics(sf: Storefront = Depends(get_storefront)):
    """Return in-process metrics (JSON), including hit rate per cache namespace."""
    return metrics.snapshot(sf.cache)

@router.post("/metrics/reset")
def reset_metrics(sf: Storefront = Depends(get_storefront)):
    metrics.reset()
    sf.cache.reset_metrics()
    return {"status": "ok"}

@router.post("/cache/clear")
def clear_cache(namespace: Optional[str] = None, sf: Storefront = Depends(get_storefront)):
    """Drop every cached entry, or only those of one namespace (e.g. ``brands``)."""
    removed = sf.cache.clear(namespace)
    return {"status": "ok", "namespace": namespace, "removed": removed}
