"""Client for the NetEase Cloud Music catalog.

Anonymous requests go to the public ``music.163.com/api`` endpoints. After a
successful :meth:`CatalogClient.login`, requests go to a
NeteaseCloudMusicApi compatible server and reuse the session cookies it sets.
"""

import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from ..config import CatalogSettings
from ..exceptions import CatalogError, KeywordForbiddenError
from ..utils.logging import get_logger
from ..utils.retry import retry_with_backoff
from .lrc import Lrc, parse_lrc_permissive
from .models import AlbumIdentity, CatalogAlbum, CatalogTrack, LyricPayload, TrackIdentity
from .text_utils import whole_word_replace

logger = get_logger(__name__)

# ----------------------
# Endpoints
# ----------------------
SEARCH_URL = "http://music.163.com/api/search/pc"
ALBUM_URL = "http://music.163.com/api/album/{album_id}"
LYRIC_URL = "http://music.163.com/api/song/lyric"

SEARCH_TYPE_TRACK = 1
SEARCH_TYPE_ALBUM = 10

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Referer": "http://music.163.com/",
}

_PHONE_RE = re.compile(r"^[0-9]+$")

# Errors a malformed record raises while being parsed
_MALFORMED = (KeyError, TypeError, ValueError, AttributeError)


def is_transient_error(error: Exception) -> bool:
    """Connection drops, timeouts and 5xx responses are worth retrying."""
    if isinstance(error, requests.exceptions.HTTPError):
        response = error.response
        return response is not None and response.status_code >= 500
    return isinstance(error, (requests.exceptions.ConnectionError, requests.exceptions.Timeout))


def _artist_names(data: Optional[List[Dict[str, Any]]]) -> Tuple[str, ...]:
    return tuple(str(a.get("name") or "") for a in data or [])


def parse_track(data: Dict[str, Any]) -> CatalogTrack:
    """Build a track from search or album JSON (``artists`` or short ``ar``).

    Raises:
        CatalogError: If the record has no usable id or a broken artist list.
    """
    try:
        artists = data.get("artists")
        if artists is None:
            artists = data.get("ar")
        return CatalogTrack(
            name=str(data.get("name") or ""),
            artists=_artist_names(artists),
            id=int(data["id"]),
        )
    except _MALFORMED as e:
        raise CatalogError(f"Malformed track in catalog response: {e!r}") from e


def _publish_year(timestamp: Optional[int]) -> Optional[int]:
    if timestamp is None:
        return None
    try:
        return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).year
    except (OverflowError, OSError, ValueError):
        return None


def parse_album(data: Dict[str, Any]) -> CatalogAlbum:
    try:
        return CatalogAlbum(
            name=str(data.get("name") or ""),
            artists=_artist_names(data.get("artists")),
            id=int(data["id"]),
            track_count=data.get("size"),
            year=_publish_year(data.get("publishTime")),
        )
    except _MALFORMED as e:
        raise CatalogError(f"Malformed album in catalog response: {e!r}") from e


def _parse_records(parser: Callable[[Dict[str, Any]], Any], records: Any) -> List[Any]:
    if not records:
        return []
    if not isinstance(records, list):
        raise CatalogError(f"Expected a list of records, got {type(records).__name__}")
    return [parser(r) for r in records]


def _parse_lyric_part(data: Optional[Dict[str, Any]]) -> Tuple[Optional[Lrc], int]:
    if not data:
        return None, 0
    text = data.get("lyric")
    lrc = parse_lrc_permissive(text) if text else None
    return lrc, int(data.get("version") or 0)


def parse_lyric(track_id: int, data: Dict[str, Any]) -> LyricPayload:
    """Build a lyric payload from the lyric endpoint's JSON."""
    if data.get("uncollected"):
        return LyricPayload(track_id=track_id, collected=False)
    if data.get("nolyric"):
        return LyricPayload(track_id=track_id, collected=True, instrumental=True)
    try:
        raw, raw_version = _parse_lyric_part(data.get("lrc"))
        translated, translated_version = _parse_lyric_part(data.get("tlyric"))
    except _MALFORMED as e:
        raise CatalogError(f"Malformed lyric for track {track_id}: {e!r}") from e
    return LyricPayload(
        track_id=track_id,
        collected=True,
        raw=raw,
        raw_version=raw_version,
        translated=translated,
        translated_version=translated_version,
    )


class CatalogClient:
    """Search tracks and albums, list album tracks and fetch lyrics."""

    def __init__(
        self,
        settings: Optional[CatalogSettings] = None,
        whole_word_table: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or CatalogSettings()
        self.whole_word_table = whole_word_table or {}
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        self.logged_in = False
        self._request = retry_with_backoff(
            max_retries=self.settings.max_retries,
            exceptions=(requests.exceptions.RequestException,),
            retry_if=is_transient_error,
        )(self._request_once)

    # ----------------------
    # Transport
    # ----------------------
    def _api_url(self, path: str) -> str:
        return self.settings.api_server.rstrip("/") + path

    def _request_once(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self.session.get(url, params=params, timeout=self.settings.timeout)
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError:
            raise CatalogError(f"Invalid JSON from {url}")
        if not isinstance(data, dict):
            raise CatalogError(f"Unexpected response from {url}")
        return data

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = self._request(url, params)
        code = data.get("code")
        if code != 200:
            raise CatalogError(f"Catalog returned code {code} for {url}")
        return data

    # ----------------------
    # Login
    # ----------------------
    def login(self, account: str, password: str) -> bool:
        """Log in through the API server. Phone numbers use the cellphone endpoint."""
        if _PHONE_RE.match(account):
            url = self._api_url("/login/cellphone")
            params = {"phone": account, "password": password}
        else:
            url = self._api_url("/login")
            params = {"email": account, "password": password}

        try:
            self._get(url, params)
        except (CatalogError, requests.exceptions.RequestException) as e:
            logger.debug(f"Login failed: {e}")
            self.logged_in = False
            return False
        self.logged_in = True
        return True

    # ----------------------
    # Search
    # ----------------------
    def _keywords(self, name: str, artists: Tuple[str, ...], with_artists: bool) -> str:
        keywords = [name] if name else []
        if with_artists:
            keywords.extend(artists)
        if not keywords:
            raise ValueError("Nothing to search for: name and artists are empty")
        return " ".join(whole_word_replace(k, self.whole_word_table) for k in keywords)

    def _search(self, keywords: str, search_type: int, limit: int) -> Dict[str, Any]:
        if self.logged_in:
            data = self._get(
                self._api_url("/search"),
                {"keywords": keywords, "type": search_type, "limit": limit},
            )
        else:
            data = self._get(SEARCH_URL, {"s": keywords, "type": search_type, "limit": limit})
        result = data.get("result")
        if result is None:
            raise KeywordForbiddenError(keywords)
        if not isinstance(result, dict):
            raise CatalogError(f"Unexpected search result for {keywords}")
        return result

    def search_tracks(
        self, track: TrackIdentity, limit: int, with_artists: bool
    ) -> List[CatalogTrack]:
        keywords = self._keywords(track.name, track.artists, with_artists)
        logger.debug(f"Searching tracks: {keywords}")
        result = self._search(keywords, SEARCH_TYPE_TRACK, limit)
        if not result.get("songCount"):
            return []
        return _parse_records(parse_track, result.get("songs"))

    def search_albums(
        self, album: AlbumIdentity, limit: int, with_artists: bool
    ) -> List[CatalogAlbum]:
        keywords = self._keywords(album.name, album.artists, with_artists)
        logger.debug(f"Searching albums: {keywords}")
        result = self._search(keywords, SEARCH_TYPE_ALBUM, limit)
        if not result.get("albumCount"):
            return []
        return _parse_records(parse_album, result.get("albums"))

    # ----------------------
    # Albums and lyrics
    # ----------------------
    def get_album_tracks(self, album_id: int) -> List[CatalogTrack]:
        if self.logged_in:
            data = self._get(self._api_url("/album"), {"id": album_id})
            songs = data.get("songs")
        else:
            data = self._get(ALBUM_URL.format(album_id=album_id))
            album = data.get("album") or {}
            if not isinstance(album, dict):
                raise CatalogError(f"Malformed album {album_id} in catalog response")
            songs = album.get("songs")
        return _parse_records(parse_track, songs)

    def get_lyric(self, track_id: int) -> LyricPayload:
        if self.logged_in:
            data = self._get(self._api_url("/lyric"), {"id": track_id})
        else:
            data = self._get(LYRIC_URL, {"id": track_id, "lv": -1, "tv": -1})
        return parse_lyric(track_id, data)
