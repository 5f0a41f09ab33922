# storefront/utils/text.py
# Text normalisation helpers shared by the relevance scorers and cache keys
from __future__ import annotations

import re
import unicodedata
from typing import Any, List, Tuple

_WHITESPACE_RE = re.compile(r"\s+")


def collapse_ws(text: str) -> str:
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize(text: Any) -> str:
    """Lowercase + collapsed whitespace. Non-strings normalise to ''."""
    if not isinstance(text, str):
        return ""
    return collapse_ws(text).lower()


def terms(text: Any) -> List[str]:
    norm = normalize(text)
    return norm.split(" ") if norm else []


def collation_key(name: str) -> Tuple[str, str]:
    """
    Locale-insensitive ordering key for display names.

    Accents are folded and case is ignored for the primary comparison
    ("Éclair" sorts with "eclair"); the raw string breaks remaining ties so
    the order is total and stable across runs.
    """
    decomposed = unicodedata.normalize("NFKD", name or "")
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return folded.casefold(), name or ""
