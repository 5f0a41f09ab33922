# =============================================
# File: tests/test_api.py
# Purpose: HTTP surface: Result -> status mapping, tenant header, structured logs, metrics
# =============================================
import json


def _find_json_events(caplog, name: str):
    out = []
    for rec in caplog.records:
        try:
            data = json.loads(rec.message)
        except (TypeError, ValueError):
            continue
        if isinstance(data, dict) and data.get("event") == name:
            out.append(data)
    return out


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_brands_are_cached_between_requests(client, source):
    r1 = client.get("/brands")
    r2 = client.get("/brands")
    assert r1.status_code == r2.status_code == 200
    assert r1.json()["from_cache"] is False
    assert r2.json()["from_cache"] is True
    assert r1.json()["data"] == r2.json()["data"]
    assert source.calls["brands"] == 1


def test_tenant_header_scopes_reads(client):
    default = client.get("/brands").json()["data"]
    acme = client.get("/brands", headers={"X-Tenant-ID": "acme"})
    assert len(default) == 5
    # fixture rows carry no tenant_id, so another tenant sees nothing
    assert acme.json() == {"data": [], "from_cache": False}


def test_not_found_and_upstream_statuses(client, source):
    assert client.get("/brands/b-nope").status_code == 404
    assert client.get("/products/p-404").status_code == 404

    source.fail("categories")
    r = client.get("/categories")
    assert r.status_code == 502
    assert "categories" in r.json()["detail"]


def test_search_endpoint(client):
    r = client.get("/search", params={"q": "brake", "limit": 2})
    assert r.status_code == 200
    page = r.json()["data"]
    assert [p["id"] for p in page["items"]] == ["p-3", "p-1"]
    assert page["has_more"] is True

    assert client.get("/search", params={"q": "brake", "sort_by": "cheapest"}).status_code == 422


def test_vehicle_search_endpoint(client, caplog):
    caplog.set_level("INFO", logger="storefront")
    r = client.get("/search/vehicle", params={"make": "Toyota", "model": "Corolla", "year": 2020, "engine": "1.8L"})
    assert r.status_code == 200
    assert [p["id"] for p in r.json()["data"]["items"]] == ["p-1", "p-5"]

    missing_make = client.get("/search/vehicle", params={"model": "Corolla", "year": 2020})
    assert missing_make.status_code == 422
    assert "make" in missing_make.json()["detail"]
    assert client.get("/search/vehicle", params={"make": "Toyota", "model": "Corolla"}).status_code == 422

    events = _find_json_events(caplog, "request.completed")
    assert [e["error_kind"] for e in events if e["status"] == 422] == ["invalid_input", "invalid_input"]


def test_suggestions_and_popular(client):
    assert client.get("/search/suggestions", params={"q": "b"}).json()["data"] == []
    client.get("/search", params={"q": "engine oil"})
    popular = client.get("/search/popular", params={"limit": 2}).json()["data"]
    assert popular[0] == {"term": "engine oil", "count": 1}


def test_catalog_endpoints(client):
    assert [c["name"] for c in client.get("/categories/hierarchy").json()["data"]][0] == "Brakes"
    assert client.get("/brands/b-bosch/stats").json()["data"]["total_products"] == 6
    models = client.get("/vehicles/search", params={"q": "corolla hybrid"}).json()["data"]
    assert [m["name"] for m in models] == ["Corolla Hybrid", "Corolla"]
    years = client.get("/vehicles/models/md-corolla/years").json()["data"]
    assert [y["year"] for y in years] == [2022, 2020]


def test_recommend_endpoint(client):
    r = client.post("/recommend", json={"user_id": "u-brakes", "limit": 6, "exclude_ids": ["p-2"]})
    assert r.status_code == 200
    data = r.json()["data"]
    ids = [p["id"] for p in data["items"]]
    assert len(ids) == 6
    assert "p-2" not in ids
    assert data["items"][0]["relation_type"] == "preferred-category"
    assert r.json()["from_cache"] is False


def test_recommend_validates_body(client):
    assert client.post("/recommend", json={"limit": 0}).status_code == 422
    # blank user id means anonymous
    data = client.post("/recommend", json={"user_id": "  ", "limit": 3}).json()["data"]
    assert data["metadata"]["personalized_count"] == 0


def test_product_page_recommendations(client):
    similar = client.get("/products/p-1/similar").json()["data"]
    assert [p["id"] for p in similar] == ["p-3", "p-2"]
    related = client.get("/products/p-1/related").json()["data"]
    assert [p["id"] for p in related] == ["p-5", "p-9"]
    cart = client.post("/recommend/cart", json={"product_ids": ["p-1"]}).json()["data"]
    assert [p["id"] for p in cart] == ["p-5", "p-9"]
    trending = client.get("/recommend/trending", params={"limit": 2, "exclude": ["p-4"]}).json()["data"]
    assert len(trending) == 2 and "p-4" not in [p["id"] for p in trending]


def test_structured_log_per_request(client, caplog):
    caplog.set_level("INFO", logger="storefront")
    client.get("/brands", headers={"X-Tenant-ID": "acme"})
    client.get("/search", params={"q": "brake"})

    events = _find_json_events(caplog, "request.completed")
    assert len(events) == 2
    brands, search = events
    assert brands["path"] == "/brands"
    assert brands["status"] == 200
    assert brands["tenant"] == "acme"
    assert brands["cache_hit"] is False
    assert isinstance(brands["latency_ms"], int)
    assert brands["request_id"]
    assert search["tenant"] == "default"
    assert len(search["qhash"]) == 10
    # raw queries stay out of the log line
    assert "brake" not in json.dumps(search)


def test_request_id_header(client):
    assert len(client.get("/health").headers["X-Request-ID"]) == 32


def test_metrics_include_cache_statistics(client, source):
    client.get("/brands")
    client.get("/brands")
    source.fail("categories")
    client.get("/categories")

    m = client.get("/metrics").json()
    # /metrics itself is recorded after the snapshot is taken
    assert m["counters"]["requests_total"] == 3
    assert m["counters"]["upstream_errors_total"] == 1
    assert m["cache_outcomes"] == {"hit": 1, "miss": 1}
    assert sum(m["latency_ms"]["counts"]) == 3
    assert m["cache"]["namespaces"]["brands"]["hit_rate"] == 0.5
    assert "GET /brands" in m["performance"]["endpoints"]


def test_metrics_reset_and_cache_clear(client):
    client.get("/brands")
    client.get("/categories")

    r = client.post("/cache/clear", params={"namespace": "brands"})
    assert r.json() == {"status": "ok", "namespace": "brands", "removed": 1}
    assert client.get("/categories").json()["from_cache"] is True
    assert client.get("/brands").json()["from_cache"] is False

    client.post("/metrics/reset")
    m = client.get("/metrics").json()
    assert m["counters"]["requests_total"] == 1
    assert m["cache"]["hits"] == 0
