# =============================================
# File: storefront/services/__init__.py
# Purpose: Wire the catalog services around one data source and one cache
# =============================================
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

from storefront.data.memory import InMemoryDataSource
from storefront.data.source import DataSource
from storefront.services.brands import BrandService
from storefront.services.categories import CategoryService
from storefront.services.products import ProductService
from storefront.services.recommendations import RecommendationService
from storefront.services.search_stats import SearchStats
from storefront.services.vehicles import VehicleService
from storefront.utils.ttl_cache import TTLCache

_DEMO_FIXTURE = Path(__file__).resolve().parent.parent / "data" / "demo_catalog.json"


@dataclass
class Storefront:
    source: DataSource
    cache: TTLCache
    stats: SearchStats = field(default_factory=SearchStats)
    recommendations: Optional[RecommendationService] = None

    def __post_init__(self) -> None:
        self.brands = BrandService(self.source, self.cache)
        self.categories = CategoryService(self.source, self.cache)
        self.vehicles = VehicleService(self.source, self.cache)
        self.products = ProductService(self.source, self.cache, self.stats)
        if self.recommendations is None:
            self.recommendations = RecommendationService(self.source)


def build_storefront(source: DataSource | None = None, cache: TTLCache | None = None) -> Storefront:
    """One cache per process (or per test); the fixture catalog when no source is given."""
    if source is None:
        path = os.getenv("CATALOG_FIXTURE") or str(_DEMO_FIXTURE)
        source = InMemoryDataSource.from_json(path)
    cache = cache if cache is not None else TTLCache()
    logger.info(f"[storefront] services ready source={type(source).__name__}")
    return Storefront(source=source, cache=cache)
