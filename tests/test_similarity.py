# =============================================
# File: tests/test_similarity.py
# =============================================
import random

import pytest

from storefront.scoring import SimilarityScorer, rank_similar
from storefront.scoring.similarity import price_variation

TARGET = {"id": "t", "category_id": "c-brakes", "brand_id": "b-bosch", "price": 100.0}


@pytest.mark.parametrize("candidate,expected", [
    ({"category_id": "c-brakes", "brand_id": "b-bosch", "price": 110.0}, 90),
    ({"category_id": "c-brakes", "brand_id": "b-other", "price": 140.0}, 50),
    ({"category_id": "c-engine", "brand_id": "b-bosch", "price": 300.0}, 30),
    ({"category_id": "c-engine", "brand_id": None, "price": None}, 0),
])
def test_base_score(candidate, expected):
    assert SimilarityScorer(jitter=0).base_score(TARGET, candidate) == expected


def test_unknown_brands_are_not_the_same_brand():
    target = {"id": "t", "brand_id": None}
    assert SimilarityScorer(jitter=0).base_score(target, {"brand_id": None}) == 0


def test_price_variation_edge_cases():
    assert price_variation({"price": 0}, {"price": 0}) == 0.0
    assert price_variation({"price": 10}, {}) is None
    assert price_variation({"price": True}, {"price": 1}) is None


def test_jitter_stays_below_its_bound():
    scorer = SimilarityScorer(rng=random.Random(3), jitter=10)
    for _ in range(50):
        s = scorer.score(TARGET, {"category_id": "c-engine"})
        assert 0 <= s < 10


def test_seeded_ranking_is_reproducible():
    pool = [{"id": i, "category_id": "c-brakes", "price": 100.0 + i} for i in range(8)]
    first = rank_similar(TARGET, pool, limit=8, scorer=SimilarityScorer(rng=random.Random(7)))
    second = rank_similar(TARGET, pool, limit=8, scorer=SimilarityScorer(rng=random.Random(7)))
    assert [(c.id, c.score) for c in first] == [(c.id, c.score) for c in second]


def test_rank_similar_skips_target_and_duplicates():
    pool = [
        {"id": "t", "category_id": "c-brakes"},
        {"id": "a", "category_id": "c-engine", "price": 100.0},
        {"id": "b", "category_id": "c-brakes", "brand_id": "b-bosch", "price": 95.0},
        {"id": "b", "category_id": "c-brakes", "brand_id": "b-bosch", "price": 95.0},
    ]
    ranked = rank_similar(TARGET, pool, limit=5, scorer=SimilarityScorer(jitter=0))
    assert [c.id for c in ranked] == ["b", "a"]
    assert ranked[0].match_type == "similar-category"
    assert rank_similar(TARGET, pool, limit=0, scorer=SimilarityScorer(jitter=0)) == []


def test_from_env(monkeypatch):
    monkeypatch.setenv("SIMILARITY_JITTER", "0")
    monkeypatch.delenv("SIMILARITY_SEED", raising=False)
    scorer = SimilarityScorer.from_env()
    assert scorer.score(TARGET, TARGET) == 90
