"""LRC document model, parsing and serialization.

This module handles:
- Parsing LRC text in strict mode (for files this tool wrote) or permissive
  mode (for text coming from the catalog)
- Header fields (title, artist, album, attribution, offset)
- Serializing a document back to LRC text
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..exceptions import LrcFormatError

# ----------------------
# LRC tag regexes
# ----------------------
_LEADING_TAG_RE = re.compile(r"\[([^\[\]]*)\]")

_TIMESTAMP_RE = re.compile(
    r"""
    ^
    (?P<min>\d+)              # minutes
    :
    (?P<sec>[0-5]?\d)         # seconds
    (?:[.:](?P<frac>\d{1,3}))?  # optional fractional seconds
    $
    """,
    re.VERBOSE,
)

_METADATA_RE = re.compile(r"^(?P<key>[A-Za-z#]+)\s*:(?P<value>.*)$", re.DOTALL)

_OFFSET_RE = re.compile(r"^[+-]?\d+$")

# Header keys in serialization order
HEADER_KEYS = ("ti", "ar", "al", "by", "offset")


def _clean_header(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class Lrc:
    """An LRC document: optional headers plus timestamp (ms) to text lines."""

    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    by: Optional[str] = None
    offset: Optional[int] = None
    lines: Dict[int, str] = field(default_factory=dict)

    def __post_init__(self):
        self.title = _clean_header(self.title)
        self.artist = _clean_header(self.artist)
        self.album = _clean_header(self.album)
        self.by = _clean_header(self.by)
        if not self.offset:
            self.offset = None

    def __str__(self) -> str:
        return serialize_lrc(self)


# ----------------------
# Timestamp helpers
# ----------------------
def parse_timestamp(token: str) -> Optional[int]:
    """Parse the inside of a timestamp tag like ``01:23.45`` to milliseconds.

    Precision is centiseconds, the precision lines are written with, so a
    third fraction digit is dropped.
    """
    match = _TIMESTAMP_RE.match(token.strip())
    if not match:
        return None
    minutes = int(match.group("min"))
    seconds = int(match.group("sec"))
    if seconds >= 60:
        return None
    frac = match.group("frac") or ""
    millis = int(frac.ljust(2, "0")[:2]) * 10 if frac else 0
    return (minutes * 60 + seconds) * 1000 + millis


def format_timestamp(millis: int) -> str:
    """Format milliseconds as ``mm:ss.cc``."""
    total_seconds, ms = divmod(millis, 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}.{ms // 10:02d}"


# ----------------------
# Parsing
# ----------------------
def _apply_metadata(lrc: Lrc, key: str, value: str) -> bool:
    key = key.lower()
    if key == "ti":
        lrc.title = _clean_header(value)
    elif key == "ar":
        lrc.artist = _clean_header(value)
    elif key == "al":
        lrc.album = _clean_header(value)
    elif key == "by":
        lrc.by = _clean_header(value)
    elif key == "offset":
        value = value.strip()
        if not _OFFSET_RE.match(value):
            return False
        lrc.offset = int(value) or None
    # Other metadata tags (id, length, re, ve...) are valid but unused
    return True


def _parse_line(line: str, lrc: Lrc) -> bool:
    """Parse one stripped line into ``lrc``. Returns False if unrecognized."""
    if not line:
        return True
    if not line.startswith("["):
        return False

    tokens: List[str] = []
    position = 0
    while position < len(line) and line[position] == "[":
        match = _LEADING_TAG_RE.match(line, position)
        if not match:
            return False
        tokens.append(match.group(1))
        position = match.end()
    text = line[position:].strip()

    times = [parse_timestamp(token) for token in tokens]
    if all(t is not None for t in times):
        for t in times:
            lrc.lines[t] = text
        return True

    if len(tokens) == 1 and not text:
        metadata = _METADATA_RE.match(tokens[0])
        if metadata:
            return _apply_metadata(lrc, metadata.group("key"), metadata.group("value"))
    return False


def parse_lrc(text: str, strict: bool = True) -> Lrc:
    """Parse LRC text.

    Args:
        text: LRC document text
        strict: Raise :class:`LrcFormatError` on the first unrecognized line.
            When False, unrecognized lines are dropped.

    Returns:
        Parsed :class:`Lrc`
    """
    if text is None:
        raise ValueError("text cannot be None")

    lrc = Lrc()
    for number, line in enumerate(text.splitlines(), start=1):
        line = line.lstrip("\ufeff").strip()
        if not _parse_line(line, lrc) and strict:
            raise LrcFormatError(f"Unrecognized LRC line {number}: {line!r}", number)
    return lrc


def parse_lrc_permissive(text: str) -> Lrc:
    """Parse untrusted LRC text, silently dropping unrecognized lines."""
    return parse_lrc(text, strict=False)


# ----------------------
# Serialization
# ----------------------
def serialize_lrc(lrc: Lrc) -> str:
    """Render headers in fixed order, then lines sorted by timestamp."""
    out: List[str] = []
    headers = {
        "ti": lrc.title,
        "ar": lrc.artist,
        "al": lrc.album,
        "by": lrc.by,
        "offset": str(lrc.offset) if lrc.offset else None,
    }
    for key in HEADER_KEYS:
        if headers[key] is not None:
            out.append(f"[{key}:{headers[key]}]")
    for millis in sorted(lrc.lines):
        out.append(f"[{format_timestamp(millis)}]{lrc.lines[millis]}")
    return "".join(line + "\n" for line in out)
