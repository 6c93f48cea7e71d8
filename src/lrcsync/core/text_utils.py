"""
Text utilities used before searching and scoring names.

All helpers take their tables from :mod:`lrcsync.config` settings objects so
the same text is normalized identically for searching, scoring and matching.
"""

from typing import Dict, List

from ..config import FuzzySettings, MatchSettings, SearchSettings


# ----------------------
# Width folding
# ----------------------
def to_half_width(value: str) -> str:
    """Fold full-width ASCII variants and the ideographic space to half-width."""
    if value is None:
        raise ValueError("value cannot be None")
    chars = []
    for c in value:
        code = ord(c)
        if code == 0x3000:
            chars.append(" ")
        elif 0xFF00 < code < 0xFF5F:
            chars.append(chr(code - 0xFEE0))
        else:
            chars.append(c)
    return "".join(chars)


# ----------------------
# Replacement tables
# ----------------------
def whole_word_replace(value: str, table: Dict[str, str]) -> str:
    """Replace the whole string when it matches a table key (case-insensitive)."""
    if value is None:
        raise ValueError("value cannot be None")
    if not value:
        return value
    folded = value.casefold()
    for key, replacement in table.items():
        if folded == key.casefold():
            return replacement
    return value


def char_replace(value: str, table: Dict[str, str]) -> str:
    """Substitute single characters using the character table."""
    if value is None:
        raise ValueError("value cannot be None")
    if not value or not table:
        return value
    return value.translate(str.maketrans(table))


def normalize_text(value: str, search: SearchSettings, match: MatchSettings) -> str:
    """Half-width fold, trim, then apply both replacement tables."""
    value = to_half_width(value).strip()
    value = whole_word_replace(value, search.whole_word_replace)
    value = char_replace(value, match.char_replace)
    return value.strip()


# ----------------------
# Fuzzy stripping
# ----------------------
def _fuzzy_keywords(settings: FuzzySettings) -> List[str]:
    keywords: List[str] = []
    if settings.strip_covers:
        keywords.extend(settings.covers)
    if settings.strip_featurings:
        keywords.extend(settings.featurings)
    return [k.casefold() for k in keywords if k]


def fuzzy(value: str, settings: FuzzySettings) -> str:
    """Drop trailing extra info such as "(Live)" or "(feat. X)".

    The string is cut at the first marker character from
    ``settings.extra_info_start`` whose following text starts with an enabled
    cover or featuring keyword. Without such a marker the value is returned
    unchanged.
    """
    if value is None:
        raise ValueError("value cannot be None")
    keywords = _fuzzy_keywords(settings)
    if not keywords:
        return value

    for index, c in enumerate(value):
        if c not in settings.extra_info_start:
            continue
        extra_info = value[index + 1:].lstrip().casefold()
        if any(extra_info.startswith(k) for k in keywords):
            return value[:index].rstrip()
    return value
