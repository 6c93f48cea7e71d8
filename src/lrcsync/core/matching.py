"""Resolve local tracks and albums to catalog IDs.

Resolution order for a track:
1. A matching record in the local database
2. The provider watermark in the file's tags (or file head)
3. The track listing of the resolved catalog album, when the file has an album
4. A catalog search with artists, then without artists

Every successful resolution is written to the database immediately.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple, TypeVar, Union

import requests

from ..config import Settings
from ..exceptions import CatalogError, KeywordForbiddenError
from ..utils.logging import get_logger
from .caches import RunCaches
from .catalog import CatalogClient
from .database import LyricDatabase, TrackRecord
from .models import (
    AlbumIdentity,
    AudioTags,
    CatalogAlbum,
    CatalogTrack,
    LyricPayload,
    TrackIdentity,
)
from .prompt import NonInteractivePrompter, Prompter
from .similarity import compute_similarity
from .text_utils import fuzzy as fuzzy_strip, normalize_text
from .watermark import extract_catalog_id, scan_file

logger = get_logger(__name__)

Candidate = TypeVar("Candidate", CatalogTrack, CatalogAlbum)
Target = Union[TrackIdentity, AlbumIdentity]


class MatchingEngine:
    """Matches local identities against the catalog, asking the operator when unsure."""

    def __init__(
        self,
        settings: Settings,
        catalog: CatalogClient,
        database: LyricDatabase,
        caches: Optional[RunCaches] = None,
        prompter: Optional[Prompter] = None,
    ):
        self.settings = settings
        self.catalog = catalog
        self.database = database
        self.caches = caches or RunCaches()
        self.prompter = prompter or NonInteractivePrompter()

    # ----------------------
    # Tracks
    # ----------------------
    def resolve_track(
        self,
        track: TrackIdentity,
        album: Optional[AlbumIdentity] = None,
        tags: Optional[AudioTags] = None,
        path: Optional[Path] = None,
        allow_search: bool = True,
    ) -> Optional[TrackRecord]:
        """Resolve a local track to its database record, creating it on success.

        With ``allow_search`` off only the database and the watermark are
        consulted. Catalog failures are logged and reported as no match.
        """
        record = self.database.match_track(track, album)
        if record is not None:
            logger.info(f"Found {track.describe()} in the database (ID {record.id})")
            return record

        if tags is not None:
            catalog_id = extract_catalog_id(tags, path)
        elif path is not None:
            catalog_id = scan_file(Path(path))
        else:
            catalog_id = None
        if catalog_id is not None:
            logger.info(f"Read catalog ID {catalog_id} from the watermark")
            return self.database.add_track(track, album, catalog_id)

        if not allow_search:
            return None
        if not track.name:
            logger.warning("Track has no title, cannot search")
            return None

        try:
            matched = None
            if album is not None:
                matched = self._match_in_album(track, album)
            if matched is None:
                matched = self.search_track(track)
        except KeywordForbiddenError as e:
            logger.warning(f"Search failed: {e}")
            return None
        except (CatalogError, requests.exceptions.RequestException) as e:
            logger.warning(f"Catalog request failed: {e}")
            return None

        if matched is None:
            logger.warning(f"No match for {track.describe()}")
            return None
        logger.info(f"Matched {track.describe()} to catalog ID {matched.id}")
        return self.database.add_track(track, album, matched.id)

    def _match_in_album(self, track: TrackIdentity, album: AlbumIdentity) -> Optional[CatalogTrack]:
        catalog_album = self.resolve_album(album)
        if catalog_album is None:
            return None
        candidates = self._drop_unrelated(self.get_album_tracks(catalog_album.id), track)
        matched = self.match_by_user(candidates, track)
        if matched is None:
            # Catalog albums sometimes miss tracks; fall back to a plain search
            logger.info(f"{track.describe()} not found in album {catalog_album.name}")
        return matched

    def search_track(self, track: TrackIdentity) -> Optional[CatalogTrack]:
        """Search with artists, then without artists if allowed."""
        logger.info(f"Searching for track {track.describe()}")
        retry_without_artists = self.settings.fuzzy.try_ignoring_artists and bool(track.artists)
        if track.artists:
            matched = self._search_track(track, True, manual_fallback=not retry_without_artists)
            if matched is not None or not retry_without_artists:
                return matched
            logger.warning("Retrying without artists, results may be imprecise")
        return self._search_track(track, False, manual_fallback=True)

    def _search_track(
        self, track: TrackIdentity, with_artists: bool, manual_fallback: bool
    ) -> Optional[CatalogTrack]:
        results = self.catalog.search_tracks(track, self.settings.search.limit, with_artists)
        candidates = self._collected(self._drop_unrelated(results, track))
        return self.match_by_user(candidates, track, manual_fallback=manual_fallback)

    def get_album_tracks(self, album_id: int) -> List[CatalogTrack]:
        """Album tracks whose lyric is collected, fetched once per album."""
        return self.caches.album_tracks.get_or_compute(
            album_id, lambda: self._collected(self.catalog.get_album_tracks(album_id))
        )

    def get_lyric(self, track_id: int) -> LyricPayload:
        """Lyric payload for a track, fetched once per run."""
        return self.caches.lyrics.get_or_compute(
            track_id, lambda: self.catalog.get_lyric(track_id)
        )

    def _collected(self, tracks: Sequence[CatalogTrack]) -> List[CatalogTrack]:
        return [t for t in tracks if self.get_lyric(t.id).collected]

    # ----------------------
    # Albums
    # ----------------------
    def resolve_album(self, album: AlbumIdentity) -> Optional[CatalogAlbum]:
        """Resolve an album through the database, the run memo, then search."""
        record = self.database.match_album(album)
        if record is not None:
            return CatalogAlbum(name=album.name, artists=album.artists, id=record.id)

        key = normalize_text(album.name, self.settings.search, self.settings.match)
        found, cached = self.caches.albums.lookup(key)
        if found:
            return cached

        logger.info(f"Searching for album {album.describe()}")
        matched = self._search_album(album, True)
        if matched is None and self.settings.fuzzy.try_ignoring_artists and album.artists:
            logger.warning("Retrying without artists, results may be imprecise")
            matched = self._search_album(album, False)

        self.caches.albums.store(key, matched)
        if matched is None:
            logger.warning(f"No match for album {album.describe()}")
            return None
        logger.info(f"Matched album {album.describe()} to catalog ID {matched.id}")
        self.database.add_album(album, matched.id)
        return matched

    def _search_album(self, album: AlbumIdentity, with_artists: bool) -> Optional[CatalogAlbum]:
        results = self.catalog.search_albums(album, self.settings.search.limit, with_artists)
        return self.match_by_user(self._drop_unrelated(results, album), album)

    # ----------------------
    # Candidate selection
    # ----------------------
    def _drop_unrelated(self, candidates: Sequence[Candidate], target: Target) -> List[Candidate]:
        """Drop candidates whose name shares nothing with the target's name."""
        return [
            c for c in candidates
            if compute_similarity(c.name, target.name, self.settings) != 0
        ]

    def _comparable(self, value: str, fuzzy: bool) -> str:
        value = normalize_text(value, self.settings.search, self.settings.match)
        if fuzzy:
            value = fuzzy_strip(value, self.settings.fuzzy).strip()
        return value

    def match_exactly(
        self, candidates: Sequence[Candidate], target: Target, fuzzy: bool = False
    ) -> Optional[Candidate]:
        """First candidate whose name and artists equal the target's after normalization."""
        name = self._comparable(target.name, fuzzy)
        artists = sorted(self._comparable(a, fuzzy) for a in target.artists)
        for candidate in candidates:
            if self._comparable(candidate.name, fuzzy) != name:
                continue
            if sorted(self._comparable(a, fuzzy) for a in candidate.artists) != artists:
                continue
            return candidate
        return None

    def score(self, candidates: Sequence[Candidate], target: Target) -> List[Tuple[Candidate, float]]:
        """Fuzzy scores above the minimum similarity, best first."""
        scored = [
            (c, compute_similarity(c.name, target.name, self.settings, fuzzy=True))
            for c in candidates
        ]
        scored = [pair for pair in scored if pair[1] > self.settings.match.minimum_similarity]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored

    def match_by_user(
        self,
        candidates: Sequence[Candidate],
        target: Target,
        manual_fallback: bool = False,
    ) -> Optional[Candidate]:
        """Exact pass, fuzzy exact pass, then let the operator pick.

        When the operator declines every candidate and ``manual_fallback`` is
        set, a catalog ID typed by hand is accepted for tracks.
        """
        if not candidates:
            return None

        result = self.match_exactly(candidates, target)
        if result is not None or not self.settings.fuzzy.try_ignoring_extra_info:
            return result
        result = self.match_exactly(candidates, target, fuzzy=True)
        if result is not None:
            return result

        scored = self.score(candidates, target)
        if not scored:
            return None
        index = self.prompter.choose(target, scored)
        if index is not None:
            return scored[index][0]

        if manual_fallback and isinstance(target, TrackIdentity):
            catalog_id = self.prompter.ask_catalog_id(target)
            if catalog_id is not None:
                return CatalogTrack(name=target.name, artists=target.artists, id=catalog_id)
        return None
