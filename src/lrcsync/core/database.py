"""Persisted database of resolved catalog IDs and written lyric versions.

The database lives as a hidden JSON file inside the scanned directory. It is
loaded once per run, mutated as matches and lyric downloads succeed, and
rewritten in full after every mutation so an interrupted run keeps every
resolution made so far.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..exceptions import DatabaseFormatError
from ..utils.logging import get_logger
from .models import AlbumIdentity, TrackIdentity, sort_artists

logger = get_logger(__name__)

FORMAT_VERSION = 1
LEGACY_FORMAT_VERSION = 0
SUPPORTED_FORMAT_VERSIONS = (LEGACY_FORMAT_VERSION, FORMAT_VERSION)


@dataclass
class LyricRecord:
    """Versions and checksum of the lyric file last written for a track."""

    raw_version: int
    translated_version: int
    checksum: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rawVersion": self.raw_version,
            "translatedVersion": self.translated_version,
            "checkSum": self.checksum,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LyricRecord":
        return cls(
            raw_version=int(data.get("rawVersion", 0)),
            translated_version=int(data.get("translatedVersion", 0)),
            checksum=str(data["checkSum"]),
        )


@dataclass
class AlbumRecord:
    name: str
    id: int

    def matches(self, album: AlbumIdentity) -> bool:
        return self.name == album.name

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "id": self.id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlbumRecord":
        return cls(name=str(data["name"]), id=int(data["id"]))


@dataclass
class TrackRecord:
    name: str
    artists: List[str]
    album_name: Optional[str]
    id: int
    lyric: Optional[LyricRecord] = None

    def __post_init__(self):
        self.artists = list(sort_artists(self.artists))

    def matches(self, track: TrackIdentity, album: Optional[AlbumIdentity]) -> bool:
        """Name, artist set and album (or its absence) must all agree."""
        if self.name != track.name:
            return False
        if album is None:
            if self.album_name is not None:
                return False
        elif self.album_name != album.name:
            return False
        return tuple(self.artists) == track.artists

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "artists": list(self.artists),
            "albumName": self.album_name,
            "id": self.id,
            "lyric": self.lyric.to_dict() if self.lyric else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackRecord":
        lyric = data.get("lyric")
        return cls(
            name=str(data["name"]),
            artists=[str(a) for a in data.get("artists") or []],
            album_name=data.get("albumName"),
            id=int(data["id"]),
            lyric=LyricRecord.from_dict(lyric) if lyric else None,
        )


class LyricDatabase:
    """In-memory database with write-through persistence."""

    def __init__(
        self,
        path: Optional[Path] = None,
        album_records: Optional[List[AlbumRecord]] = None,
        track_records: Optional[List[TrackRecord]] = None,
    ):
        self.path = Path(path) if path else None
        self.format_version = FORMAT_VERSION
        self.album_records: List[AlbumRecord] = album_records or []
        self.track_records: List[TrackRecord] = track_records or []

    # ------------------------
    # Loading and saving
    # ------------------------
    @classmethod
    def load(cls, path: Path) -> "LyricDatabase":
        """Load the database at ``path``, or create an empty one if absent.

        Raises:
            DatabaseFormatError: file is unreadable or has an unknown format version
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"No database at {path}, starting empty")
            return cls(path)

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise DatabaseFormatError(f"Cannot read database {path}: {e}")
        if not isinstance(data, dict):
            raise DatabaseFormatError(f"Database {path} is not a JSON object")

        version = data.get("formatVersion", LEGACY_FORMAT_VERSION)
        if version not in SUPPORTED_FORMAT_VERSIONS:
            raise DatabaseFormatError(
                f"Unsupported database format version {version} in {path}"
            )
        if version == LEGACY_FORMAT_VERSION:
            logger.warning(
                f"Database {path} uses a deprecated format and will be rebuilt"
            )
            return cls(path)

        try:
            database = cls(
                path,
                album_records=[AlbumRecord.from_dict(d) for d in data.get("albumInfos") or []],
                track_records=[TrackRecord.from_dict(d) for d in data.get("trackInfos") or []],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DatabaseFormatError(f"Malformed record in database {path}: {e}")
        database.normalize()
        logger.info(f"Loaded database {path}")
        return database

    def normalize(self) -> None:
        """Sort records by name, then catalog ID, using code point order."""
        self.album_records.sort(key=lambda r: (r.name, r.id))
        for record in self.track_records:
            record.artists = list(sort_artists(record.artists))
        self.track_records.sort(key=lambda r: (r.name, r.id))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "formatVersion": self.format_version,
            "albumInfos": [r.to_dict() for r in self.album_records],
            "trackInfos": [r.to_dict() for r in self.track_records],
        }

    def save(self) -> None:
        """Rewrite the whole database file."""
        if self.path is None:
            return
        self.normalize()
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)
        logger.debug(f"Saved database {self.path}")

    # ------------------------
    # Lookup
    # ------------------------
    def match_album(self, album: AlbumIdentity) -> Optional[AlbumRecord]:
        if album is None:
            raise ValueError("album cannot be None")
        return next((r for r in self.album_records if r.matches(album)), None)

    def match_track(
        self, track: TrackIdentity, album: Optional[AlbumIdentity]
    ) -> Optional[TrackRecord]:
        if track is None:
            raise ValueError("track cannot be None")
        return next((r for r in self.track_records if r.matches(track, album)), None)

    # ------------------------
    # Mutation (write-through)
    # ------------------------
    def add_album(self, album: AlbumIdentity, catalog_id: int) -> AlbumRecord:
        record = self.match_album(album)
        if record is not None:
            return record
        record = AlbumRecord(name=album.name, id=catalog_id)
        self.album_records.append(record)
        self.save()
        return record

    def add_track(
        self, track: TrackIdentity, album: Optional[AlbumIdentity], catalog_id: int
    ) -> TrackRecord:
        record = self.match_track(track, album)
        if record is not None:
            return record
        record = TrackRecord(
            name=track.name,
            artists=list(track.artists),
            album_name=album.name if album else None,
            id=catalog_id,
        )
        self.track_records.append(record)
        self.save()
        return record

    def update_lyric(self, record: TrackRecord, lyric: LyricRecord) -> None:
        record.lyric = lyric
        self.save()

    def stats(self) -> Dict[str, Any]:
        return {
            "path": str(self.path) if self.path else None,
            "format_version": self.format_version,
            "album_count": len(self.album_records),
            "track_count": len(self.track_records),
            "lyric_count": sum(1 for r in self.track_records if r.lyric),
        }
