# storefront/routers/search.py
from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request

from storefront.routers.deps import get_storefront, get_tenant, unwrap
from storefront.services import Storefront
from storefront.utils import slog
from storefront.utils.cache_keys import TenantContext

router = APIRouter(tags=["search"])


@router.get("/search")
async def search_products(
    request: Request,
    q: str = "",
    category_id: Optional[str] = None,
    brand_id: Optional[str] = None,
    in_stock: bool = False,
    sort_by: Literal["relevance", "newest", "price_asc", "price_desc", "name"] = "relevance",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    ctx: TenantContext = Depends(get_tenant),
    sf: Storefront = Depends(get_storefront),
):
    """Relevance-ranked product search (name > prefix > substring, +description)."""
    request.state.log_context = {"qhash": slog.qhash(q)}
    result = await sf.products.search_products(
        ctx, q,
        category_id=category_id, brand_id=brand_id, in_stock=in_stock,
        sort_by=sort_by, page=page, limit=limit,
    )
    return unwrap(result, request)


@router.get("/search/vehicle")
async def search_by_vehicle(
    request: Request,
    make: str = "",
    model: str = "",
    year: int = 0,
    engine: Optional[str] = None,
    category_id: Optional[str] = None,
    brand_id: Optional[str] = None,
    in_stock: bool = False,
    sort_by: Literal["relevance", "newest", "price_asc", "price_desc", "name"] = "relevance",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    ctx: TenantContext = Depends(get_tenant),
    sf: Storefront = Depends(get_storefront),
):
    """Parts that fit a vehicle; make, model and year are required."""
    result = await sf.products.search_by_vehicle(
        ctx, make, model, year, engine,
        category_id=category_id, brand_id=brand_id, in_stock=in_stock,
        sort_by=sort_by, page=page, limit=limit,
    )
    return unwrap(result, request)


@router.get("/search/suggestions")
async def suggestions(
    request: Request,
    q: str = "",
    limit: int = Query(10, ge=1, le=50),
    ctx: TenantContext = Depends(get_tenant),
    sf: Storefront = Depends(get_storefront),
):
    return unwrap(await sf.products.suggestions(ctx, q, limit=limit), request)


@router.get("/search/popular")
def popular_searches(
    limit: int = Query(10, ge=1, le=50),
    ctx: TenantContext = Depends(get_tenant),
    sf: Storefront = Depends(get_storefront),
):
    return {"data": sf.products.popular_searches(ctx, limit=limit), "from_cache": False}


@router.get("/products/{product_id}")
async def get_product(request: Request, product_id: str, ctx: TenantContext = Depends(get_tenant), sf: Storefront = Depends(get_storefront)):
    return unwrap(await sf.products.get_product(ctx, product_id), request)
