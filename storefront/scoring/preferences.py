# =============================================
# File: storefront/scoring/preferences.py
# Purpose: Behavioural preference profile + preference-weighted ranking
# =============================================
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from storefront.scoring.models import ScoredCandidate, is_available

# Signal weights
WEIGHT_BROWSING = 1
WEIGHT_WISHLIST = 2
WEIGHT_PURCHASE = 3

# How much history feeds a profile (most recent first)
BROWSING_WINDOW = 20
PURCHASE_WINDOW = 10

TOP_CATEGORIES = 3


def price_bucket(price: float) -> str:
    """budget (<50), mid (<200), premium (<500), luxury (>=500)."""
    if price < 50:
        return "budget"
    if price < 200:
        return "mid"
    if price < 500:
        return "premium"
    return "luxury"


def category_of(product: Dict[str, Any]) -> Optional[str]:
    cat = product.get("category")
    if isinstance(cat, dict):
        cat = cat.get("name")
    if isinstance(cat, str) and cat.strip():
        return cat.strip()
    cid = product.get("category_id")
    return str(cid) if cid is not None else None


def category_source(product: Dict[str, Any]) -> Tuple[Optional[str], Any]:
    """
    (field, raw value) that category_of() read its key from. The field is None
    when the key came from a nested category object, which cannot be matched
    with a plain backend filter.
    """
    cat = product.get("category")
    if isinstance(cat, dict):
        name = cat.get("name")
        if isinstance(name, str) and name.strip():
            return None, name.strip()
    elif isinstance(cat, str) and cat.strip():
        return "category", cat
    cid = product.get("category_id")
    return ("category_id", cid) if cid is not None else (None, None)


def brand_of(product: Dict[str, Any]) -> Optional[str]:
    brand = product.get("brand")
    if isinstance(brand, dict):
        brand = brand.get("name")
    if isinstance(brand, str) and brand.strip():
        return brand.strip()
    bid = product.get("brand_id")
    return str(bid) if bid is not None else None


@dataclass
class UserPreferenceProfile:
    """Accumulated weights per category / price bucket / brand. Never persisted."""
    categories: Counter = field(default_factory=Counter)
    price_buckets: Counter = field(default_factory=Counter)
    brands: Counter = field(default_factory=Counter)
    # category key -> (backend field, raw value) it was read from
    category_sources: Dict[str, Tuple[Optional[str], Any]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.categories

    def add(self, product: Dict[str, Any], weight: int) -> None:
        cat = category_of(product)
        if cat:
            self.categories[cat] += weight
            self.category_sources.setdefault(cat, category_source(product))
        price = product.get("price")
        # zero / missing prices say nothing about the user's budget
        if isinstance(price, (int, float)) and price:
            self.price_buckets[price_bucket(float(price))] += weight
        brand = brand_of(product)
        if brand:
            self.brands[brand] += weight


def build_preference_profile(
    browsing_history: Iterable[Dict[str, Any]],
    purchase_history: Iterable[Dict[str, Any]],
    wishlist_items: Iterable[Dict[str, Any]],
) -> UserPreferenceProfile:
    """
    Fold the three signal sources into one profile:
    browsing weight 1, wishlist weight 2, purchase weight 3. A category seen
    in several sources accumulates every contribution.
    """
    profile = UserPreferenceProfile()
    for source, weight in (
        (browsing_history, WEIGHT_BROWSING),
        (purchase_history, WEIGHT_PURCHASE),
        (wishlist_items, WEIGHT_WISHLIST),
    ):
        for product in source or []:
            if isinstance(product, dict):
                profile.add(product, weight)
    return profile


def top_categories(profile: UserPreferenceProfile, n: int = TOP_CATEGORIES) -> List[str]:
    # Counter.most_common keeps first-seen order on ties
    return [cat for cat, _ in profile.categories.most_common(n)]


def category_filters(profile: UserPreferenceProfile, categories: Sequence[str]) -> Optional[Dict[str, List[Any]]]:
    """
    Group the given category keys by the product field they came from, ready
    for FilterSpec.any_of (one query per field). None when any key has no
    filterable field; the caller then has to rank an unfiltered window.
    """
    groups: Dict[str, List[Any]] = {}
    for cat in categories:
        field_name, raw = profile.category_sources.get(cat, (None, None))
        if field_name is None:
            return None
        groups.setdefault(field_name, []).append(raw)
    return groups


def rank_by_preferences(
    profile: UserPreferenceProfile,
    candidates: Iterable[Dict[str, Any]],
    exclude_ids: Iterable[Any] = (),
    limit: int = 8,
    *,
    top_n: int = TOP_CATEGORIES,
) -> List[ScoredCandidate]:
    """
    Keep candidates from the user's top-N categories that are available and
    not excluded, ranked by their category weight (input order breaks ties,
    so callers pass candidates newest first).
    """
    if limit <= 0 or profile.is_empty:
        return []
    preferred = set(top_categories(profile, top_n))
    excluded = set(exclude_ids or ())

    picked: List[ScoredCandidate] = []
    seen = set()
    for cand in candidates or []:
        cid = cand.get("id")
        if cid in excluded or cid in seen or not is_available(cand):
            continue
        cat = category_of(cand)
        if cat not in preferred:
            continue
        seen.add(cid)
        picked.append(ScoredCandidate(
            entity=cand,
            score=float(profile.categories[cat]),
            match_type="preferred-category",
        ))
    picked.sort(key=lambda c: -c.score)
    return picked[:limit]


def merge_with_fallback(
    personalized: Sequence[ScoredCandidate],
    fallback: Sequence[ScoredCandidate],
    limit: int,
) -> List[ScoredCandidate]:
    """Personalised first, then fallback items not already present, truncated to limit."""
    out: List[ScoredCandidate] = []
    if limit <= 0:
        return out
    ids = set()
    for c in list(personalized) + list(fallback):
        if c.id in ids:
            continue
        ids.add(c.id)
        out.append(c)
        if len(out) >= limit:
            break
    return out
