"""Lyric pipeline: build an LRC document from catalog data and write it safely.

This module handles:
- Normalizing raw and translated documents
- Choosing the output mode (merged, raw, translated)
- Merging translations into the raw document
- Deciding whether an existing ``.lrc`` file may be replaced, using the
  checksum recorded the last time this tool wrote it
"""

import zlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..config import LyricSettings
from ..utils.logging import get_logger
from .chinese import traditional_to_simplified
from .database import LyricDatabase, LyricRecord, TrackRecord
from .lrc import Lrc, serialize_lrc
from .models import LyricPayload

logger = get_logger(__name__)

TRANSLATION_OPEN = "「"
TRANSLATION_CLOSE = "」"


class LyricStatus(str, Enum):
    OK = "ok"
    NOT_COLLECTED = "not_collected"
    INSTRUMENTAL = "instrumental"
    # Collected, not instrumental, yet no configured mode could be built
    NO_MODE_SATISFIED = "no_mode_satisfied"


@dataclass
class LyricBuild:
    status: LyricStatus
    lrc: Optional[Lrc] = None
    mode: Optional[str] = None


class WriteDecision(str, Enum):
    WRITE_NEW = "write_new"
    UPDATE = "update"
    OVERWRITE = "overwrite"
    SKIP_UP_TO_DATE = "skip_up_to_date"
    SKIP_AUTO_UPDATE_DISABLED = "skip_auto_update_disabled"
    SKIP_FOREIGN_FILE = "skip_foreign_file"

    @property
    def should_write(self) -> bool:
        return self in (WriteDecision.WRITE_NEW, WriteDecision.UPDATE, WriteDecision.OVERWRITE)


# ----------------------
# Building
# ----------------------
def normalize_lyric(lrc: Lrc, trim_chars: str, simplify: bool = False) -> Lrc:
    """Copy of ``lrc`` with trailing ``trim_chars`` removed from every line."""
    lines = {}
    for millis, text in lrc.lines.items():
        text = text.rstrip(trim_chars) if trim_chars else text
        if simplify:
            text = traditional_to_simplified(text)
        lines[millis] = text
    return Lrc(
        title=lrc.title,
        artist=lrc.artist,
        album=lrc.album,
        by=lrc.by,
        offset=lrc.offset,
        lines=lines,
    )


def merge_lyrics(raw: Lrc, translated: Lrc) -> Lrc:
    """Merge a translation into the raw document.

    Translated lines with no raw line at the same timestamp are inserted as-is.
    Otherwise the translation is appended in brackets, except when the raw line
    is empty: an empty raw line marks the end of the previous line.
    """
    if raw is None or translated is None:
        raise ValueError("raw and translated lyrics are required")

    merged = Lrc(title=raw.title, offset=raw.offset, lines=dict(raw.lines))
    for millis, text in translated.lines.items():
        if not text:
            continue
        if millis not in merged.lines:
            merged.lines[millis] = text
            continue
        raw_text = merged.lines[millis]
        if not raw_text:
            continue
        merged.lines[millis] = f"{raw_text} {TRANSLATION_OPEN}{text}{TRANSLATION_CLOSE}"
    return merged


def build_lrc(payload: LyricPayload, settings: LyricSettings) -> LyricBuild:
    """Turn a catalog lyric payload into the LRC document to write."""
    if not payload.collected:
        return LyricBuild(LyricStatus.NOT_COLLECTED)
    if payload.instrumental:
        return LyricBuild(LyricStatus.INSTRUMENTAL)

    raw = normalize_lyric(payload.raw, settings.trim_chars) if payload.raw else None
    translated = (
        normalize_lyric(payload.translated, settings.trim_chars, settings.simplify_translated)
        if payload.translated
        else None
    )

    for mode in settings.modes:
        mode = mode.lower()
        if mode == "merged":
            if raw is None or translated is None:
                continue
            return LyricBuild(LyricStatus.OK, merge_lyrics(raw, translated), mode)
        if mode == "raw":
            if raw is None:
                continue
            return LyricBuild(LyricStatus.OK, raw, mode)
        if mode == "translated":
            if translated is None:
                continue
            return LyricBuild(LyricStatus.OK, translated, mode)
        raise ValueError(f"Unknown lyric mode: {mode}")
    return LyricBuild(LyricStatus.NO_MODE_SATISFIED)


# ----------------------
# Freshness policy
# ----------------------
def compute_checksum(data: bytes) -> str:
    """CRC-32 of ``data`` as eight upper-case hex digits."""
    return f"{zlib.crc32(data) & 0xFFFFFFFF:08X}"


def file_checksum(path: Path) -> Optional[str]:
    """Checksum of an existing file, or None if it does not exist."""
    path = Path(path)
    if not path.is_file():
        return None
    return compute_checksum(path.read_bytes())


def decide_write(
    existing_checksum: Optional[str],
    record: Optional[LyricRecord],
    payload: LyricPayload,
    settings: LyricSettings,
) -> WriteDecision:
    """Decide whether a lyric file may be (re)written.

    Args:
        existing_checksum: checksum of the file on disk, None when absent
        record: lyric record stored for the track, if any
        payload: freshly fetched catalog lyric
        settings: lyric settings (auto-update and overwrite switches)
    """
    if existing_checksum is None:
        return WriteDecision.WRITE_NEW

    if record is not None and record.checksum == existing_checksum:
        if (
            payload.raw_version <= record.raw_version
            and payload.translated_version <= record.translated_version
        ):
            return WriteDecision.SKIP_UP_TO_DATE
        if settings.auto_update:
            return WriteDecision.UPDATE
        return WriteDecision.SKIP_AUTO_UPDATE_DISABLED

    if settings.overwriting:
        return WriteDecision.OVERWRITE
    return WriteDecision.SKIP_FOREIGN_FILE


def lrc_path_for(audio_path: Path) -> Path:
    return Path(audio_path).with_suffix(".lrc")


# ----------------------
# Writing
# ----------------------
class LyricOutcome(str, Enum):
    WRITTEN = "written"
    UPDATED = "updated"
    OVERWRITTEN = "overwritten"
    UP_TO_DATE = "up_to_date"
    SKIPPED = "skipped"
    NOT_COLLECTED = "not_collected"
    INSTRUMENTAL = "instrumental"
    UNAVAILABLE = "unavailable"


_WRITE_OUTCOMES = {
    WriteDecision.WRITE_NEW: LyricOutcome.WRITTEN,
    WriteDecision.UPDATE: LyricOutcome.UPDATED,
    WriteDecision.OVERWRITE: LyricOutcome.OVERWRITTEN,
}

_BUILD_OUTCOMES = {
    LyricStatus.NOT_COLLECTED: LyricOutcome.NOT_COLLECTED,
    LyricStatus.INSTRUMENTAL: LyricOutcome.INSTRUMENTAL,
    LyricStatus.NO_MODE_SATISFIED: LyricOutcome.UNAVAILABLE,
}


class LyricWriter:
    """Fetches, builds and writes the lyric file for one resolved track."""

    def __init__(
        self,
        get_lyric: Callable[[int], LyricPayload],
        database: LyricDatabase,
        settings: LyricSettings,
    ):
        self.get_lyric = get_lyric
        self.database = database
        self.settings = settings

    def sync(self, record: TrackRecord, lrc_path: Path) -> LyricOutcome:
        """Bring ``lrc_path`` up to date for the track in ``record``.

        Catalog errors propagate to the caller.
        """
        lrc_path = Path(lrc_path)
        existing_checksum = file_checksum(lrc_path)
        payload = self.get_lyric(record.id)

        decision = decide_write(existing_checksum, record.lyric, payload, self.settings)
        if decision == WriteDecision.SKIP_UP_TO_DATE:
            logger.info("Local lyric is already up to date, skipping")
            return LyricOutcome.UP_TO_DATE
        if decision == WriteDecision.SKIP_AUTO_UPDATE_DISABLED:
            logger.info("A newer lyric exists but auto-update is disabled, skipping")
            return LyricOutcome.SKIPPED
        if decision == WriteDecision.SKIP_FOREIGN_FILE:
            logger.info("Local lyric was not written by lrcsync, skipping")
            return LyricOutcome.SKIPPED
        if decision == WriteDecision.UPDATE:
            logger.info("Local lyric is outdated, updating")

        build = build_lrc(payload, self.settings)
        if build.status == LyricStatus.NOT_COLLECTED:
            logger.warning("The catalog has no lyric for this track")
            return _BUILD_OUTCOMES[build.status]
        if build.status == LyricStatus.INSTRUMENTAL:
            logger.warning("Track is instrumental, no lyric to write")
            return _BUILD_OUTCOMES[build.status]
        if build.status == LyricStatus.NO_MODE_SATISFIED:
            logger.warning(
                "Lyric is collected but none of the modes "
                f"{', '.join(self.settings.modes)} could be built "
                "(the track may be instrumental without being marked so)"
            )
            return _BUILD_OUTCOMES[build.status]

        logger.info(f"Got {build.mode} lyric")
        data = serialize_lrc(build.lrc).encode(self.settings.encoding)
        lrc_path.write_bytes(data)
        self.database.update_lyric(
            record,
            LyricRecord(
                raw_version=payload.raw_version,
                translated_version=payload.translated_version,
                checksum=compute_checksum(data),
            ),
        )
        logger.info(f"Wrote {lrc_path.name}")
        return _WRITE_OUTCOMES[decision]
