"""Data models for track identities, catalog entries and lyric payloads."""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .lrc import Lrc


def sort_artists(artists: Iterable[str]) -> Tuple[str, ...]:
    """Trim artist names and sort them by code point."""
    return tuple(sorted(a.strip() for a in artists))


@dataclass(frozen=True)
class TrackIdentity:
    """A local track: name plus an ordered set of artists."""

    name: str
    artists: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.name is None or self.artists is None:
            raise ValueError("Track name and artists are required")
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "artists", sort_artists(self.artists))

    def describe(self) -> str:
        if not self.artists:
            return self.name
        return f"{self.name} by {','.join(self.artists)}"

    def __str__(self) -> str:
        return f"Name:{self.name} | Artists:{','.join(self.artists)}"


@dataclass(frozen=True)
class AlbumIdentity:
    """A local album: name plus an ordered set of album artists."""

    name: str
    artists: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.name is None or self.artists is None:
            raise ValueError("Album name and artists are required")
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "artists", sort_artists(self.artists))

    def describe(self) -> str:
        if not self.artists:
            return self.name
        return f"{self.name} by {','.join(self.artists)}"

    def __str__(self) -> str:
        return f"Name:{self.name} | Artists:{','.join(self.artists)}"


@dataclass(frozen=True)
class CatalogTrack(TrackIdentity):
    """A track returned by the remote catalog."""

    id: int = 0

    def __str__(self) -> str:
        return f"{super().__str__()} | Id:{self.id}"


@dataclass(frozen=True)
class CatalogAlbum(AlbumIdentity):
    """An album returned by the remote catalog."""

    id: int = 0
    track_count: Optional[int] = None
    year: Optional[int] = None

    def __str__(self) -> str:
        return f"{super().__str__()} | Id:{self.id}"


@dataclass
class LyricPayload:
    """Lyric data returned by the catalog for one track."""

    track_id: int
    collected: bool
    instrumental: bool = False
    raw: Optional["Lrc"] = None
    raw_version: int = 0
    translated: Optional["Lrc"] = None
    translated_version: int = 0


@dataclass
class AudioTags:
    """Tags read from a local audio file.

    ``artists`` and ``album_artists`` are the raw delimited strings.
    """

    title: str = ""
    artists: str = ""
    album: Optional[str] = None
    album_artists: str = ""
    track_total: Optional[int] = None
    year: Optional[int] = None
    comment: Optional[str] = None
    description: Optional[str] = None
