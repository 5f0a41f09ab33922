# =============================================
# File: storefront/scoring/similarity.py
# Purpose: "Similar items" scoring for the product detail page
# =============================================
from __future__ import annotations

import os
import random
from typing import Any, Dict, Iterable, List, Optional

from storefront.scoring.models import ScoredCandidate

SCORE_SAME_CATEGORY = 40.0
SCORE_SAME_BRAND = 30.0
SCORE_PRICE_CLOSE = 20.0    # < 20% apart
SCORE_PRICE_NEAR = 10.0     # < 50% apart
DEFAULT_JITTER = 10.0


def _price(p: Dict[str, Any]) -> Optional[float]:
    v = p.get("price")
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return float(v)


def price_variation(a: Dict[str, Any], b: Dict[str, Any]) -> Optional[float]:
    """|a - b| / mean(a, b); None when either price is unknown."""
    pa, pb = _price(a), _price(b)
    if pa is None or pb is None:
        return None
    avg = (pa + pb) / 2
    if avg <= 0:
        return 0.0 if pa == pb else None
    return abs(pa - pb) / avg


class SimilarityScorer:
    """
    score = 40 (same category) + 30 (same brand) + price bonus (20 / 10)
            + jitter in [0, jitter)

    The jitter only spreads near-tied candidates. Pass a seeded
    random.Random for reproducible runs, or jitter=0 to switch it off.
    """

    def __init__(self, rng: random.Random | None = None, jitter: float = DEFAULT_JITTER) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._jitter = max(0.0, float(jitter))

    @classmethod
    def from_env(cls) -> "SimilarityScorer":
        jitter = float(os.getenv("SIMILARITY_JITTER", str(DEFAULT_JITTER)))
        seed = os.getenv("SIMILARITY_SEED")
        return cls(rng=random.Random(seed) if seed else None, jitter=jitter)

    def base_score(self, target: Dict[str, Any], candidate: Dict[str, Any]) -> float:
        score = 0.0
        if target.get("category_id") is not None and target.get("category_id") == candidate.get("category_id"):
            score += SCORE_SAME_CATEGORY
        # unknown brands never count as the same brand
        if target.get("brand_id") is not None and target.get("brand_id") == candidate.get("brand_id"):
            score += SCORE_SAME_BRAND
        variation = price_variation(target, candidate)
        if variation is not None:
            if variation < 0.2:
                score += SCORE_PRICE_CLOSE
            elif variation < 0.5:
                score += SCORE_PRICE_NEAR
        return score

    def score(self, target: Dict[str, Any], candidate: Dict[str, Any]) -> float:
        s = self.base_score(target, candidate)
        if self._jitter:
            s += self._rng.random() * self._jitter
        return s


def rank_similar(
    target: Dict[str, Any],
    pool: Iterable[Dict[str, Any]],
    *,
    limit: int = 8,
    scorer: SimilarityScorer | None = None,
) -> List[ScoredCandidate]:
    """Score every pool item against target (target itself skipped), best first."""
    scorer = scorer or SimilarityScorer()
    tid = target.get("id")
    scored: List[ScoredCandidate] = []
    seen = set()
    for cand in pool or []:
        cid = cand.get("id")
        if cid == tid or cid in seen:
            continue
        seen.add(cid)
        scored.append(ScoredCandidate(entity=cand, score=scorer.score(target, cand), match_type="similar-category"))
    # stable: pool order (newest first) breaks exact ties
    scored.sort(key=lambda c: -c.score)
    return scored[:max(0, limit)]
