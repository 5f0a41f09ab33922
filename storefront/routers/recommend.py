# storefront/routers/recommend.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field, field_validator

from storefront.routers.deps import get_storefront, get_tenant, unwrap
from storefront.services import Storefront
from storefront.utils.cache_keys import TenantContext

router = APIRouter(tags=["recommend"])


# ---------- Request schemas ----------
class RecommendRequest(BaseModel):
    """
    - user_id: optional; anonymous visitors get trending items only.
    - limit: number of items wanted (always filled when the catalog allows).
    - exclude_ids: already shown / already in cart.
    """
    user_id: Optional[str] = Field(None, max_length=128)
    limit: int = Field(12, ge=1, le=50)
    exclude_ids: List[str] = Field(default_factory=list)

    @field_validator("user_id")
    @classmethod
    def _blank_is_anonymous(cls, v: Optional[str]) -> Optional[str]:
        v = (v or "").strip()
        return v or None


class CartRequest(BaseModel):
    product_ids: List[str] = Field(default_factory=list)
    limit: int = Field(6, ge=1, le=50)


# ---------- Endpoints ----------
@router.post("/recommend")
async def post_recommend(
    payload: RecommendRequest,
    request: Request,
    ctx: TenantContext = Depends(get_tenant),
    sf: Storefront = Depends(get_storefront),
):
    """Personalised picks first, trending backfill for the remaining slots."""
    request.state.log_context = {"user_id": payload.user_id}
    result = await sf.recommendations.personalized(
        ctx, payload.user_id, exclude_ids=payload.exclude_ids, limit=payload.limit
    )
    return unwrap(result, request)


@router.get("/recommend/trending")
async def get_trending(
    request: Request,
    limit: int = Query(12, ge=1, le=50),
    exclude: Optional[List[str]] = Query(None),
    ctx: TenantContext = Depends(get_tenant),
    sf: Storefront = Depends(get_storefront),
):
    return unwrap(await sf.recommendations.trending(ctx, exclude_ids=exclude or [], limit=limit), request)


@router.post("/recommend/cart")
async def post_cart_recommendations(
    payload: CartRequest,
    request: Request,
    ctx: TenantContext = Depends(get_tenant),
    sf: Storefront = Depends(get_storefront),
):
    return unwrap(await sf.recommendations.cart(ctx, payload.product_ids, limit=payload.limit), request)


@router.get("/products/{product_id}/similar")
async def get_similar(
    request: Request,
    product_id: str,
    limit: int = Query(8, ge=1, le=50),
    ctx: TenantContext = Depends(get_tenant),
    sf: Storefront = Depends(get_storefront),
):
    return unwrap(await sf.recommendations.similar(ctx, product_id, limit=limit), request)


@router.get("/products/{product_id}/related")
async def get_related(
    request: Request,
    product_id: str,
    limit: int = Query(8, ge=1, le=50),
    ctx: TenantContext = Depends(get_tenant),
    sf: Storefront = Depends(get_storefront),
):
    return unwrap(await sf.recommendations.related(ctx, product_id, limit=limit), request)
