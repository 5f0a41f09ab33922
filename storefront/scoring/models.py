# =============================================
# File: storefront/scoring/models.py
# Purpose: Scored wrapper around a raw catalog entity
# =============================================
from __future__ import annotations

import math
from typing import Any, Dict

from pydantic import BaseModel, field_validator


def is_available(entity: Dict[str, Any]) -> bool:
    """Active and in stock: the only products a recommendation may surface."""
    try:
        stock = float(entity.get("stock_quantity") or 0)
    except (TypeError, ValueError):
        return False
    return bool(entity.get("active", True)) and stock > 0


class ScoredCandidate(BaseModel):
    """
    A catalog entity (brand, category, vehicle model, product) plus the score
    that ranked it and a tag saying why it was included, e.g.
    "exact-name", "similar-category", "frequently-bought-together".
    """
    entity: Dict[str, Any]
    score: float
    match_type: str

    @field_validator("score")
    @classmethod
    def _finite_non_negative(cls, v: float) -> float:
        if not math.isfinite(v) or v < 0:
            raise ValueError("score must be a finite non-negative number")
        return v

    @property
    def id(self) -> Any:
        return self.entity.get("id")

    @property
    def name(self) -> str:
        return str(self.entity.get("name") or "")

    def flatten(self, score_field: str = "relevance_score", tag_field: str = "match_type") -> Dict[str, Any]:
        """Entity fields plus score/tag, the shape handed back to callers."""
        out = dict(self.entity)
        out[score_field] = self.score
        out[tag_field] = self.match_type
        return out
