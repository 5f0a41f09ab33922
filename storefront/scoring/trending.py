# =============================================
# File: storefront/scoring/trending.py
# Purpose: Trending fallback used for new users and to backfill recommendations
# =============================================
from __future__ import annotations

import os
import random
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol

from storefront.scoring.models import ScoredCandidate, is_available

DEFAULT_HALF_LIFE_HOURS = 72.0


class TrendingScorer(Protocol):
    def __call__(self, entity: Dict[str, Any], now: datetime) -> float: ...


def parse_timestamp(value: Any) -> Optional[datetime]:
    """datetime / ISO-8601 string / epoch seconds -> aware UTC datetime."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(float(value), tz=timezone.utc)
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class DecayedActivityScorer:
    """
    Recent activity, exponentially decayed by item age:

        (1 + views + 2 * wishlist_adds + 3 * purchases) * 0.5 ** (age_hours / half_life)

    Counts come from the entity (view_count / wishlist_count / purchase_count,
    missing = 0). Items without a usable created_at are not decayed.
    """

    def __init__(self, half_life_hours: float | None = None) -> None:
        if half_life_hours is None:
            half_life_hours = float(os.getenv("TRENDING_HALF_LIFE_HOURS", str(DEFAULT_HALF_LIFE_HOURS)))
        if half_life_hours <= 0:
            raise ValueError("half_life_hours must be positive")
        self.half_life_hours = half_life_hours

    @staticmethod
    def _count(entity: Dict[str, Any], name: str) -> float:
        v = entity.get(name)
        if isinstance(v, bool) or not isinstance(v, (int, float)) or v < 0:
            return 0.0
        return float(v)

    def __call__(self, entity: Dict[str, Any], now: datetime) -> float:
        activity = (
            1.0
            + self._count(entity, "view_count")
            + 2.0 * self._count(entity, "wishlist_count")
            + 3.0 * self._count(entity, "purchase_count")
        )
        created = parse_timestamp(entity.get("created_at"))
        if created is None:
            return activity
        age_hours = max(0.0, (now - created).total_seconds() / 3600.0)
        return activity * 0.5 ** (age_hours / self.half_life_hours)


class RandomTrendingScorer:
    """Uniform 0-100 placeholder score. Only useful for demos and tests."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def __call__(self, entity: Dict[str, Any], now: datetime) -> float:
        return self._rng.random() * 100


def rank_trending(
    candidates: Iterable[Dict[str, Any]],
    exclude_ids: Iterable[Any] = (),
    limit: int = 12,
    *,
    scorer: TrendingScorer | None = None,
    now: datetime | None = None,
) -> List[ScoredCandidate]:
    """
    Score available, non-excluded candidates and return the best `limit`.
    Candidates are expected newest first; that order breaks score ties.
    """
    if limit <= 0:
        return []
    scorer = scorer or DecayedActivityScorer()
    now = now or datetime.now(timezone.utc)
    excluded = set(exclude_ids or ())

    scored: List[ScoredCandidate] = []
    seen = set()
    for cand in candidates or []:
        cid = cand.get("id")
        if cid in excluded or cid in seen or not is_available(cand):
            continue
        seen.add(cid)
        scored.append(ScoredCandidate(entity=cand, score=float(scorer(cand, now)), match_type="trending"))
    scored.sort(key=lambda c: -c.score)
    return scored[:limit]
