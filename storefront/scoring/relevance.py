# =============================================
# File: storefront/scoring/relevance.py
# Purpose: Text-relevance scoring for search and autocomplete
# =============================================
from __future__ import annotations

from typing import Any, Dict, Iterable, List

from storefront.scoring.models import ScoredCandidate
from storefront.utils.text import collation_key, normalize, terms

MIN_QUERY_CHARS = 2

# Single-phrase rules (additive; the three name rules are exclusive)
SCORE_EXACT_NAME = 100.0
SCORE_NAME_PREFIX = 80.0
SCORE_NAME_CONTAINS = 60.0
SCORE_DESCRIPTION = 20.0

# Multi-term rules (per term, against one field)
TERM_EXACT = 1.0
TERM_PREFIX = 0.8
TERM_CONTAINS = 0.5
TERM_THRESHOLD = 0.3


def _sort_key(c: ScoredCandidate):
    return (-c.score, collation_key(c.name))


def _phrase_score(q: str, name: str, description: str) -> tuple[float, str]:
    score = 0.0
    match_type = "none"
    if name == q:
        score += SCORE_EXACT_NAME
        match_type = "exact-name"
    elif name.startswith(q):
        score += SCORE_NAME_PREFIX
        match_type = "name-prefix"
    elif q in name:
        score += SCORE_NAME_CONTAINS
        match_type = "name-contains"
    if description and q in description:
        score += SCORE_DESCRIPTION
        if match_type == "none":
            match_type = "description"
    return score, match_type


def score_candidates(
    query: str,
    candidates: Iterable[Dict[str, Any]],
    *,
    name_field: str = "name",
    description_field: str = "description",
    min_score: float = 0.0,
) -> List[ScoredCandidate]:
    """
    Score candidates against a search phrase and rank them.

    Rules (each adds to the score):
      exact name          +100
      else name prefix    +80
      else name contains  +60
      description contains +20

    Queries shorter than 2 characters (after trimming) and candidates
    without a string name are dropped rather than raising. Candidates
    scoring below min_score are excluded. Output is sorted by score desc,
    then by name (accent/case-insensitive) so identical input always gives
    identical output.
    """
    q = normalize(query)
    if len(q) < MIN_QUERY_CHARS:
        return []

    scored: List[ScoredCandidate] = []
    for cand in candidates or []:
        if not isinstance(cand, dict):
            continue
        raw_name = cand.get(name_field)
        if not isinstance(raw_name, str) or not raw_name.strip():
            continue
        score, match_type = _phrase_score(q, normalize(raw_name), normalize(cand.get(description_field)))
        if score < min_score:
            continue
        scored.append(ScoredCandidate(entity=cand, score=score, match_type=match_type))

    scored.sort(key=_sort_key)
    return scored


def _term_score(term: str, field: str) -> float:
    if field == term:
        return TERM_EXACT
    if field.startswith(term):
        return TERM_PREFIX
    if term in field:
        return TERM_CONTAINS
    return 0.0


def score_terms(
    query: str,
    candidates: Iterable[Dict[str, Any]],
    *,
    field: str = "name",
    threshold: float = TERM_THRESHOLD,
) -> List[ScoredCandidate]:
    """
    Multi-term fuzzy scoring (vehicle search).

    The query is split on whitespace; every term is scored against the
    target field (1.0 whole-field match, 0.8 prefix, 0.5 substring) and the
    sum is divided by the number of terms. Candidates whose normalised
    score is below threshold are excluded, so "corolla hybrid" keeps
    "Corolla" (0.5) and drops "Unrelated Truck" (0.0).
    """
    q = normalize(query)
    if len(q) < MIN_QUERY_CHARS:
        return []
    qterms = terms(q)

    out: List[ScoredCandidate] = []
    for cand in candidates or []:
        if not isinstance(cand, dict):
            continue
        value = cand.get(field)
        if not isinstance(value, str) or not value.strip():
            continue
        target = normalize(value)
        score = sum(_term_score(t, target) for t in qterms) / len(qterms)
        if score <= 0 or score < threshold:
            continue
        out.append(ScoredCandidate(entity=cand, score=round(score, 6), match_type="terms"))

    out.sort(key=_sort_key)
    return out
