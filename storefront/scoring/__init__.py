from storefront.scoring.models import ScoredCandidate
from storefront.scoring.relevance import score_candidates, score_terms
from storefront.scoring.preferences import (
    UserPreferenceProfile,
    build_preference_profile,
    price_bucket,
    rank_by_preferences,
    top_categories,
)
from storefront.scoring.similarity import SimilarityScorer, rank_similar
from storefront.scoring.trending import DecayedActivityScorer, RandomTrendingScorer, rank_trending

__all__ = [
    "ScoredCandidate",
    "score_candidates",
    "score_terms",
    "UserPreferenceProfile",
    "build_preference_profile",
    "price_bucket",
    "rank_by_preferences",
    "top_categories",
    "SimilarityScorer",
    "rank_similar",
    "DecayedActivityScorer",
    "RandomTrendingScorer",
    "rank_trending",
]
