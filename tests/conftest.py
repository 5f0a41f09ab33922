"""Shared fixtures: a small parts catalog, a fake clock and services wired to an in-memory source."""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

# no file sink while testing
os.environ.setdefault("LOG_FILE", "")

from storefront.data.memory import InMemoryDataSource  # noqa: E402
from storefront.scoring.similarity import SimilarityScorer  # noqa: E402
from storefront.services import Storefront  # noqa: E402
from storefront.services.recommendations import RecommendationService  # noqa: E402
from storefront.utils.ttl_cache import TTLCache  # noqa: E402

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


def _product(n, name, category, category_id, brand_id, price, description="", stock=10, **extra):
    row = {
        "id": f"p-{n}",
        "name": name,
        "description": description,
        "price": price,
        "category": category,
        "category_id": category_id,
        "brand_id": brand_id,
        "stock_quantity": stock,
        # p-1 is the newest product
        "created_at": (NOW - timedelta(hours=n)).isoformat(),
    }
    row.update(extra)
    return row


def catalog_tables():
    return {
        "brands": [
            {"id": "b-bosch", "name": "Bosch", "description": "Brakes, filters and ignition"},
            {"id": "b-brembo", "name": "Brembo", "description": "Performance brake systems"},
            {"id": "b-castrol", "name": "Castrol", "description": "Engine oil"},
            {"id": "b-denso", "name": "Denso", "description": "Spark plugs and alternators"},
            {"id": "b-toyota", "name": "Toyota", "description": "Genuine parts"},
        ],
        "categories": [
            {"id": "c-brakes", "name": "Brakes", "description": "Pads, rotors and fluid", "sort_order": 1},
            {"id": "c-pads", "name": "Brake Pads", "parent_id": "c-brakes", "sort_order": 2},
            {"id": "c-rotors", "name": "Brake Rotors", "parent_id": "c-brakes", "sort_order": 1},
            {"id": "c-engine", "name": "Engine", "description": "Oil, filters and ignition", "sort_order": 2},
            {"id": "c-electrical", "name": "Electrical", "description": "Batteries and alternators"},
            {"id": "c-suspension", "name": "Suspension", "sort_order": 3},
            {"id": "c-orphan", "name": "Orphan", "parent_id": "c-missing"},
        ],
        "vehicle_makes": [
            {"id": "mk-toyota", "name": "Toyota"},
            {"id": "mk-honda", "name": "Honda"},
        ],
        "vehicle_models": [
            {"id": "md-corolla", "make_id": "mk-toyota", "name": "Corolla"},
            {"id": "md-corolla-hybrid", "make_id": "mk-toyota", "name": "Corolla Hybrid"},
            {"id": "md-camry", "make_id": "mk-toyota", "name": "Camry"},
            {"id": "md-civic", "make_id": "mk-honda", "name": "Civic"},
        ],
        "vehicle_years": [
            {"id": "y-1", "model_id": "md-corolla", "year": 2020},
            {"id": "y-2", "model_id": "md-corolla", "year": 2022},
            {"id": "y-3", "model_id": "md-civic", "year": 2019},
        ],
        "vehicle_compatibility": [
            {"id": "vc-1", "product_id": "p-1", "make": "Toyota", "model": "Corolla", "year": 2020, "engine": "1.8L"},
            {"id": "vc-2", "product_id": "p-2", "make": "Toyota", "model": "Corolla", "year": 2020},
            {"id": "vc-3", "product_id": "p-5", "make": "Toyota", "model": "Corolla", "year": 2020, "engine": "1.8L"},
            {"id": "vc-4", "product_id": "p-13", "make": "Toyota", "model": "Corolla", "year": 2020},
            {"id": "vc-5", "product_id": "p-7", "make": "Toyota", "model": "Corolla", "year": 2022},
            {"id": "vc-6", "product_id": "p-9", "make": "Honda", "model": "Civic", "year": 2019},
        ],
        "products": [
            _product(1, "Ceramic Brake Pads", "Brakes", "c-brakes", "b-bosch", 45.0, "Low dust front pads"),
            _product(2, "Drilled Brake Rotor", "Brakes", "c-brakes", "b-brembo", 180.0, "Vented rotor"),
            _product(3, "Brake Fluid DOT 4", "Brakes", "c-brakes", "b-toyota", 40.0, "High boiling point fluid"),
            _product(4, "Synthetic Engine Oil", "Engine", "c-engine", "b-castrol", 38.5, "5W-30, 5 litres",
                     view_count=90, purchase_count=20),
            _product(5, "Oil Filter", "Engine", "c-engine", "b-bosch", 12.0),
            _product(6, "Iridium Spark Plug", "Engine", "c-engine", "b-denso", 9.0),
            _product(7, "Timing Belt Kit", "Engine", "c-engine", "b-bosch", 120.0),
            _product(8, "Alternator 120A", "Electrical", "c-electrical", "b-denso", 260.0),
            _product(9, "Car Battery 70Ah", "Electrical", "c-electrical", "b-bosch", 140.0),
            _product(10, "Headlight Bulb H7", "Electrical", "c-electrical", "b-bosch", 18.0),
            _product(11, "Shock Absorber", "Suspension", "c-suspension", "b-denso", 90.0),
            _product(12, "Coil Spring", "Suspension", "c-suspension", "b-brembo", 70.0),
            _product(13, "Front Strut", "Suspension", "c-suspension", "b-bosch", 110.0, stock=0),
        ],
        "reviews": [
            {"id": "r-1", "product_id": "p-1", "rating": 5},
            {"id": "r-2", "product_id": "p-1", "rating": 4},
        ],
        "browsing_history": [],
        "wishlists": [],
        "order_items": [
            # u-brakes only ever bought brake parts
            {"id": "oi-1", "order_id": "o-1", "user_id": "u-brakes", "product_id": "p-1", "created_at": "2026-10-10T09:00:00+00:00"},
            {"id": "oi-2", "order_id": "o-2", "user_id": "u-brakes", "product_id": "p-2", "created_at": "2026-10-11T09:00:00+00:00"},
            {"id": "oi-3", "order_id": "o-3", "user_id": "u-brakes", "product_id": "p-3", "created_at": "2026-10-12T09:00:00+00:00"},
            {"id": "oi-4", "order_id": "o-4", "user_id": "u-other", "product_id": "p-1", "created_at": "2026-10-13T09:00:00+00:00"},
            {"id": "oi-5", "order_id": "o-4", "user_id": "u-other", "product_id": "p-5", "created_at": "2026-10-13T09:00:00+00:00"},
            {"id": "oi-6", "order_id": "o-5", "user_id": "u-other", "product_id": "p-1", "created_at": "2026-10-14T09:00:00+00:00"},
            {"id": "oi-7", "order_id": "o-5", "user_id": "u-other", "product_id": "p-5", "created_at": "2026-10-14T09:00:00+00:00"},
            {"id": "oi-8", "order_id": "o-5", "user_id": "u-other", "product_id": "p-9", "created_at": "2026-10-14T09:00:00+00:00"},
        ],
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(default_ttl=60, clock=clock)


@pytest.fixture
def source():
    return InMemoryDataSource(catalog_tables())


@pytest.fixture
def storefront(source, cache):
    recommendations = RecommendationService(
        source,
        similarity_scorer=SimilarityScorer(jitter=0),
        clock=lambda: NOW,
    )
    return Storefront(source=source, cache=cache, recommendations=recommendations)


@pytest.fixture
def tables():
    """A fresh copy of the catalog tables, free to edit before storefront_for()."""
    return catalog_tables()


@pytest.fixture
def storefront_for(cache):
    """Build services over a tweaked copy of the catalog tables."""

    def build(tables):
        source = InMemoryDataSource(tables)
        recommendations = RecommendationService(
            source,
            similarity_scorer=SimilarityScorer(jitter=0),
            clock=lambda: NOW,
        )
        return Storefront(source=source, cache=cache, recommendations=recommendations)

    return build


@pytest.fixture
def client(storefront):
    from fastapi.testclient import TestClient

    from storefront.main import app
    from storefront.routers.deps import get_storefront
    from storefront.utils import metrics

    metrics.reset()
    app.dependency_overrides[get_storefront] = lambda: storefront
    yield TestClient(app)
    app.dependency_overrides.clear()
