# storefront/routers/catalog.py
# Brands, categories and vehicle reference data
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from storefront.routers.deps import get_storefront, get_tenant, unwrap
from storefront.services import Storefront
from storefront.utils.cache_keys import TenantContext

router = APIRouter(tags=["catalog"])


# ---------- Brands ----------

@router.get("/brands")
async def list_brands(
    request: Request,
    limit: Optional[int] = Query(None, ge=1, le=500),
    ctx: TenantContext = Depends(get_tenant),
    sf: Storefront = Depends(get_storefront),
):
    return unwrap(await sf.brands.list_brands(ctx, limit=limit), request)


@router.get("/brands/search")
async def search_brands(
    request: Request,
    q: str = "",
    limit: Optional[int] = Query(None, ge=1, le=100),
    ctx: TenantContext = Depends(get_tenant),
    sf: Storefront = Depends(get_storefront),
):
    return unwrap(await sf.brands.search_brands(ctx, q, limit=limit), request)


@router.get("/brands/{brand_id}")
async def get_brand(request: Request, brand_id: str, ctx: TenantContext = Depends(get_tenant), sf: Storefront = Depends(get_storefront)):
    return unwrap(await sf.brands.get_brand(ctx, brand_id), request)


@router.get("/brands/{brand_id}/stats")
async def brand_stats(request: Request, brand_id: str, ctx: TenantContext = Depends(get_tenant), sf: Storefront = Depends(get_storefront)):
    return unwrap(await sf.brands.brand_stats(ctx, brand_id), request)


# ---------- Categories ----------

@router.get("/categories")
async def list_categories(request: Request, ctx: TenantContext = Depends(get_tenant), sf: Storefront = Depends(get_storefront)):
    return unwrap(await sf.categories.list_categories(ctx), request)


@router.get("/categories/counts")
async def categories_with_counts(request: Request, ctx: TenantContext = Depends(get_tenant), sf: Storefront = Depends(get_storefront)):
    return unwrap(await sf.categories.list_with_counts(ctx), request)


@router.get("/categories/hierarchy")
async def category_hierarchy(request: Request, ctx: TenantContext = Depends(get_tenant), sf: Storefront = Depends(get_storefront)):
    return unwrap(await sf.categories.hierarchy(ctx), request)


@router.get("/categories/search")
async def search_categories(request: Request, q: str = "", ctx: TenantContext = Depends(get_tenant), sf: Storefront = Depends(get_storefront)):
    return unwrap(await sf.categories.search_categories(ctx, q), request)


@router.get("/categories/{category_id}")
async def get_category(request: Request, category_id: str, ctx: TenantContext = Depends(get_tenant), sf: Storefront = Depends(get_storefront)):
    return unwrap(await sf.categories.get_category(ctx, category_id), request)


# ---------- Vehicles ----------

@router.get("/vehicles/makes")
async def vehicle_makes(request: Request, ctx: TenantContext = Depends(get_tenant), sf: Storefront = Depends(get_storefront)):
    return unwrap(await sf.vehicles.makes(ctx), request)


@router.get("/vehicles/makes/{make_id}/models")
async def vehicle_models(request: Request, make_id: str, ctx: TenantContext = Depends(get_tenant), sf: Storefront = Depends(get_storefront)):
    return unwrap(await sf.vehicles.models_by_make(ctx, make_id), request)


@router.get("/vehicles/models/{model_id}/years")
async def vehicle_years(request: Request, model_id: str, ctx: TenantContext = Depends(get_tenant), sf: Storefront = Depends(get_storefront)):
    return unwrap(await sf.vehicles.years_by_model(ctx, model_id), request)


@router.get("/vehicles/search")
async def search_vehicles(
    request: Request,
    q: str = "",
    limit: int = Query(20, ge=1, le=100),
    ctx: TenantContext = Depends(get_tenant),
    sf: Storefront = Depends(get_storefront),
):
    return unwrap(await sf.vehicles.search_models(ctx, q, limit=limit), request)
