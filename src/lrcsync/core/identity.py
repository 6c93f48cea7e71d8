"""Build track and album identities from raw tag strings."""

from typing import List, Optional

from ..config import SearchSettings
from .models import AlbumIdentity, AudioTags, TrackIdentity


def safe_string(value: Optional[str]) -> str:
    return "" if value is None else value.strip()


def split_artists(value: str, separators: str) -> List[str]:
    """Split a delimited artist tag on any separator character, dropping blanks."""
    if value is None:
        raise ValueError("value cannot be None")
    parts = [value]
    for separator in separators:
        parts = [piece for part in parts for piece in part.split(separator)]
    return [p.strip() for p in parts if p.strip()]


def has_album_info(tags: AudioTags) -> bool:
    if tags is None:
        raise ValueError("tags cannot be None")
    return bool(tags.album and tags.album.strip())


def build_track_identity(tags: AudioTags, search: SearchSettings) -> TrackIdentity:
    if tags is None:
        raise ValueError("tags cannot be None")
    return TrackIdentity(
        name=safe_string(tags.title),
        artists=tuple(split_artists(safe_string(tags.artists), search.separators)),
    )


def build_album_identity(
    tags: AudioTags, search: SearchSettings, artists_from_track: bool = True
) -> Optional[AlbumIdentity]:
    """Album identity for the tags, or None when there is no album tag.

    When ``artists_from_track`` is set and the album artist tag carries no
    artist, the track artists are used instead.
    """
    if not has_album_info(tags):
        return None
    artists = split_artists(safe_string(tags.album_artists), search.separators)
    if artists_from_track and not artists:
        artists = split_artists(safe_string(tags.artists), search.separators)
    return AlbumIdentity(name=safe_string(tags.album), artists=tuple(artists))
