# =============================================
# File: tests/test_products.py
# Purpose: Product search, detail invalidation, suggestions and popular searches
# =============================================
import pytest

from storefront.utils.cache_keys import DEFAULT_TENANT, TenantContext
from storefront.utils.result import ErrorKind

ctx = DEFAULT_TENANT


def _ids(page):
    return [p["id"] for p in page["items"]]


@pytest.mark.asyncio
async def test_search_ranks_by_relevance(storefront):
    page = (await storefront.products.search_products(ctx, "brake")).value
    assert _ids(page) == ["p-3", "p-1", "p-2"]
    assert page["items"][0]["match_type"] == "name-prefix"
    assert page["total"] == 3
    assert page["has_more"] is False


@pytest.mark.asyncio
async def test_search_pages(storefront):
    first = (await storefront.products.search_products(ctx, "brake", limit=2)).value
    second = (await storefront.products.search_products(ctx, "brake", page=2, limit=2)).value
    assert _ids(first) == ["p-3", "p-1"]
    assert first["has_more"] is True
    assert _ids(second) == ["p-2"]
    assert second["has_more"] is False


@pytest.mark.asyncio
async def test_search_with_explicit_sort(storefront):
    page = (await storefront.products.search_products(ctx, "brake", sort_by="price_desc")).value
    assert _ids(page) == ["p-2", "p-1", "p-3"]


@pytest.mark.asyncio
async def test_browse_category_by_price(storefront):
    page = (await storefront.products.search_products(ctx, category_id="c-engine", sort_by="price_asc")).value
    assert _ids(page) == ["p-6", "p-5", "p-4", "p-7"]


@pytest.mark.asyncio
async def test_in_stock_filter(storefront):
    every = (await storefront.products.search_products(ctx, "front")).value
    stocked = (await storefront.products.search_products(ctx, "front", in_stock=True)).value
    assert _ids(every) == ["p-13", "p-1"]
    assert _ids(stocked) == ["p-1"]


@pytest.mark.asyncio
async def test_repeated_search_hits_cache(storefront, source):
    await storefront.products.search_products(ctx, "brake")
    again = await storefront.products.search_products(ctx, "  BRAKE ")
    assert again.from_cache is True
    assert source.calls["products"] == 1


@pytest.mark.asyncio
async def test_single_character_search_is_empty(storefront, source):
    page = (await storefront.products.search_products(ctx, "b")).value
    assert page["items"] == [] and page["total"] == 0
    assert source.calls["products"] == 0
    assert storefront.stats.total_searches == 0


@pytest.mark.asyncio
async def test_product_detail_rating_and_invalidation(storefront, source):
    product = (await storefront.products.get_product(ctx, "p-1")).value
    assert product["rating"] == 4.5
    assert product["review_count"] == 2
    assert product["in_stock"] is True

    source.insert("reviews", {"id": "r-3", "product_id": "p-1", "rating": 1})
    stale = await storefront.products.get_product(ctx, "p-1")
    assert stale.from_cache is True and stale.value["rating"] == 4.5

    assert storefront.products.invalidate_product(ctx, "p-1") is True
    fresh = await storefront.products.get_product(ctx, "p-1")
    assert fresh.from_cache is False
    assert fresh.value["rating"] == 3.33
    assert fresh.value["review_count"] == 3


@pytest.mark.asyncio
async def test_missing_product(storefront):
    assert (await storefront.products.get_product(ctx, "p-404")).kind is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_search_upstream_failure(storefront, source):
    source.fail("products")
    result = await storefront.products.search_products(ctx, "brake")
    assert result.kind is ErrorKind.UPSTREAM


@pytest.mark.asyncio
async def test_suggestions_mix_groups_without_duplicates(storefront):
    result = await storefront.products.suggestions(ctx, "br")
    texts = [s["text"] for s in result.value]
    assert texts == [
        "Ceramic Brake Pads", "Drilled Brake Rotor", "Brake Fluid DOT 4",
        "Brembo",
        "Brakes", "Brake Pads",
        "brake rotors", "brake fluid",
    ]
    assert {s["type"] for s in result.value} == {"product", "brand", "category", "popular"}
    assert (await storefront.products.suggestions(ctx, "br")).from_cache is True


@pytest.mark.asyncio
async def test_suggestions_respect_limit(storefront):
    result = await storefront.products.suggestions(ctx, "br", limit=2)
    assert len(result.value) <= 2
    assert (await storefront.products.suggestions(ctx, "b")).value == []


@pytest.mark.asyncio
async def test_popular_searches_put_tracked_queries_first(storefront):
    for _ in range(2):
        await storefront.products.search_products(ctx, "Brake Pads")

    popular = storefront.products.popular_searches(ctx, limit=4)
    assert popular == [
        {"term": "brake pads", "count": 2},
        {"term": "engine oil", "count": 980},
        {"term": "air filter", "count": 875},
        {"term": "spark plugs", "count": 720},
    ]
    # counters are per tenant
    other = storefront.products.popular_searches(TenantContext("acme"), limit=1)
    assert other == [{"term": "brake pads", "count": 1250}]


def test_completions():
    from storefront.services.search_stats import SearchStats

    assert SearchStats.completions("en") == ["engine oil", "engine filter", "engine parts"]
    assert SearchStats.completions("") == []


@pytest.mark.asyncio
async def test_vehicle_search_lists_compatible_parts(storefront):
    page = (await storefront.products.search_by_vehicle(ctx, "Toyota", "Corolla", 2020)).value
    # best stocked first; the out-of-stock strut still fits, so it is listed last
    assert _ids(page) == ["p-1", "p-2", "p-5", "p-13"]
    assert page["total"] == 4
    assert page["items"][0]["vehicle"] == {"make": "Toyota", "model": "Corolla", "year": 2020}

    stocked = (await storefront.products.search_by_vehicle(ctx, "Toyota", "Corolla", 2020, in_stock=True)).value
    assert _ids(stocked) == ["p-1", "p-2", "p-5"]


@pytest.mark.asyncio
async def test_vehicle_search_engine_and_filters(storefront):
    by_engine = (await storefront.products.search_by_vehicle(ctx, "Toyota", "Corolla", 2020, "1.8L")).value
    assert _ids(by_engine) == ["p-1", "p-5"]
    assert by_engine["items"][0]["vehicle"]["engine"] == "1.8L"

    engine_parts = (await storefront.products.search_by_vehicle(
        ctx, "Toyota", "Corolla", 2020, category_id="c-engine", brand_id="all",
    )).value
    assert _ids(engine_parts) == ["p-5"]

    other_year = (await storefront.products.search_by_vehicle(ctx, "Toyota", "Corolla", 2022)).value
    assert _ids(other_year) == ["p-7"]


@pytest.mark.asyncio
async def test_vehicle_search_sorts_and_pages(storefront):
    by_price = (await storefront.products.search_by_vehicle(ctx, "Toyota", "Corolla", 2020, sort_by="price_asc")).value
    assert _ids(by_price) == ["p-5", "p-1", "p-13", "p-2"]

    second = (await storefront.products.search_by_vehicle(ctx, "Toyota", "Corolla", 2020, page=2, limit=3)).value
    assert _ids(second) == ["p-13"]
    assert second["total"] == 4
    assert second["has_more"] is False


@pytest.mark.asyncio
async def test_vehicle_search_is_cached_per_tenant(storefront, source):
    first = await storefront.products.search_by_vehicle(ctx, "Toyota", "Corolla", 2020)
    again = await storefront.products.search_by_vehicle(ctx, " Toyota ", "Corolla", "2020")
    assert first.from_cache is False
    assert again.from_cache is True
    assert source.calls["vehicle_compatibility"] == 1

    acme = await storefront.products.search_by_vehicle(TenantContext("acme"), "Toyota", "Corolla", 2020)
    assert acme.from_cache is False
    assert acme.value["total"] == 0


@pytest.mark.asyncio
async def test_vehicle_search_rejects_incomplete_vehicles(storefront, source):
    for make, model, year in [("", "Corolla", 2020), ("Toyota", "  ", 2020), ("Toyota", "Corolla", 0),
                              ("Toyota", "Corolla", "next year")]:
        result = await storefront.products.search_by_vehicle(ctx, make, model, year)
        assert result.kind is ErrorKind.INVALID_INPUT
    assert source.calls["vehicle_compatibility"] == 0
    assert len(storefront.cache) == 0


@pytest.mark.asyncio
async def test_vehicle_search_counts_as_a_popular_search(storefront):
    await storefront.products.search_by_vehicle(ctx, "Toyota", "Corolla", 2020, "1.8L")
    popular = storefront.products.popular_searches(ctx, limit=4)
    assert popular[0] == {"term": "toyota corolla 2020 1.8l", "count": 1}
