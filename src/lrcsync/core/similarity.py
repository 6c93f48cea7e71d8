"""Name similarity scoring."""

from rapidfuzz.distance import Levenshtein

from ..config import Settings
from .text_utils import fuzzy as fuzzy_strip, normalize_text


def similarity(x: str, y: str) -> float:
    """Return ``1 - levenshtein(x, y) / max(len(x), len(y))``.

    Two empty strings are an exact match.
    """
    longest = max(len(x), len(y))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(x, y) / longest


def compute_similarity(x: str, y: str, settings: Settings, fuzzy: bool = False) -> float:
    """Score two names after normalization, optionally fuzzy-stripped."""
    x = normalize_text(x, settings.search, settings.match)
    y = normalize_text(y, settings.search, settings.match)
    if fuzzy:
        x = fuzzy_strip(x, settings.fuzzy).strip()
        y = fuzzy_strip(y, settings.fuzzy).strip()
    return similarity(x, y)
