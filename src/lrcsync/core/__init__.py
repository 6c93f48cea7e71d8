"""Core functionality modules."""

from .models import (
    AlbumIdentity,
    AudioTags,
    CatalogAlbum,
    CatalogTrack,
    LyricPayload,
    TrackIdentity,
)

__all__ = [
    "TrackIdentity",
    "AlbumIdentity",
    "CatalogTrack",
    "CatalogAlbum",
    "LyricPayload",
    "AudioTags",
]
