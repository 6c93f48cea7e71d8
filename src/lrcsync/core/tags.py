"""Read the tags lrcsync needs from audio files using mutagen.

Supported containers: ID3 (MP3, WAV, AAC), Vorbis comments (FLAC, Ogg,
Opus), MP4 atoms (M4A) and APEv2 (APE, WavPack).
"""

from pathlib import Path
from typing import Iterable, List, Optional

from mutagen import File as MutagenFile, MutagenError
from mutagen.apev2 import APEv2
from mutagen.flac import VCFLACDict
from mutagen.id3 import ID3
from mutagen.mp4 import MP4Tags
from mutagen.oggflac import OggFLACVComment
from mutagen.oggopus import OggOpusVComment
from mutagen.oggvorbis import OggVCommentDict

from ..exceptions import TagReadError
from ..utils.logging import get_logger
from .models import AudioTags

logger = get_logger(__name__)

# Vorbis comment containers: FLAC, Ogg Vorbis, Ogg Opus and Ogg FLAC
VORBIS_COMMENT_TYPES = (VCFLACDict, OggVCommentDict, OggOpusVComment, OggFLACVComment)

# Multi-valued artist tags are joined with this separator
MULTI_VALUE_SEPARATOR = ";"


def _texts(values: Optional[Iterable]) -> List[str]:
    if not values:
        return []
    return [str(v).strip() for v in values if str(v).strip()]


def _first(values: Optional[Iterable]) -> Optional[str]:
    texts = _texts(values)
    return texts[0] if texts else None


def _joined(values: Optional[Iterable]) -> str:
    return MULTI_VALUE_SEPARATOR.join(_texts(values))


def _parse_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_year(value: Optional[str]) -> Optional[int]:
    return _parse_int(value[:4]) if value else None


def _parse_total(track_number: Optional[str]) -> Optional[int]:
    """Total from a ``n/total`` track number."""
    if not track_number or "/" not in track_number:
        return None
    return _parse_int(track_number.split("/", 1)[1].strip())


# ----------------------
# Per-container readers
# ----------------------
def _from_id3(tags: ID3) -> AudioTags:
    def frame_texts(key: str) -> List[str]:
        return [text for frame in tags.getall(key) for text in _texts(frame.text)]

    descriptions = [
        text
        for frame in tags.getall("TXXX")
        if frame.desc.lower() == "description"
        for text in _texts(frame.text)
    ]
    return AudioTags(
        title=_first(frame_texts("TIT2")) or "",
        artists=_joined(frame_texts("TPE1")),
        album=_first(frame_texts("TALB")),
        album_artists=_joined(frame_texts("TPE2")),
        track_total=_parse_total(_first(frame_texts("TRCK"))),
        year=_parse_year(_first(frame_texts("TDRC"))),
        comment=_first(frame_texts("COMM")),
        description=_first(descriptions),
    )


def _from_vorbis(tags) -> AudioTags:
    def get(key: str) -> List[str]:
        return tags[key] if key in tags else []

    track_total = _parse_int(_first(get("tracktotal")) or _first(get("totaltracks")))
    if track_total is None:
        track_total = _parse_total(_first(get("tracknumber")))
    return AudioTags(
        title=_first(get("title")) or "",
        artists=_joined(get("artist")),
        album=_first(get("album")),
        album_artists=_joined(get("albumartist") or get("album artist")),
        track_total=track_total,
        year=_parse_year(_first(get("date")) or _first(get("year"))),
        comment=_first(get("comment")),
        description=_first(get("description")),
    )


def _from_mp4(tags: MP4Tags) -> AudioTags:
    track_total = None
    track_numbers = tags.get("trkn")
    if track_numbers:
        track_total = track_numbers[0][1] or None
    return AudioTags(
        title=_first(tags.get("\xa9nam")) or "",
        artists=_joined(tags.get("\xa9ART")),
        album=_first(tags.get("\xa9alb")),
        album_artists=_joined(tags.get("aART")),
        track_total=track_total,
        year=_parse_year(_first(tags.get("\xa9day"))),
        comment=_first(tags.get("\xa9cmt")),
        description=_first(tags.get("desc")),
    )


def _from_ape(tags: APEv2) -> AudioTags:
    def get(key: str) -> List[str]:
        value = tags.get(key)
        return list(value) if value is not None else []

    return AudioTags(
        title=_first(get("Title")) or "",
        artists=_joined(get("Artist")),
        album=_first(get("Album")),
        album_artists=_joined(get("Album Artist") or get("AlbumArtist")),
        track_total=_parse_total(_first(get("Track"))),
        year=_parse_year(_first(get("Year"))),
        comment=_first(get("Comment")),
        description=_first(get("Description")),
    )


def read_tags(path: Path) -> AudioTags:
    """Read tags from an audio file.

    Raises:
        TagReadError: file cannot be opened, is not audio, or uses an
            unsupported tag container
    """
    path = Path(path)
    try:
        audio = MutagenFile(path)
    except (MutagenError, OSError) as e:
        raise TagReadError(f"Cannot read {path.name}: {e}")
    if audio is None:
        raise TagReadError(f"Unrecognized audio file: {path.name}")

    tags = audio.tags
    if tags is None:
        logger.debug(f"{path.name} has no tags")
        return AudioTags()
    if isinstance(tags, ID3):
        return _from_id3(tags)
    if isinstance(tags, VORBIS_COMMENT_TYPES):
        return _from_vorbis(tags)
    if isinstance(tags, MP4Tags):
        return _from_mp4(tags)
    if isinstance(tags, APEv2):
        return _from_ape(tags)
    raise TagReadError(f"Unsupported tag format {type(tags).__name__} in {path.name}")
