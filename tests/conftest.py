"""Test configuration and fixtures.

Provides reusable fixtures for:
- Settings with retries disabled
- A database stored in a temporary directory
- An in-memory catalog that records every call
- Watermark strings built with the provider key
"""

import base64
import json
import os
from typing import Dict, List, Optional

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from lrcsync.config import Settings
from lrcsync.core.database import LyricDatabase
from lrcsync.core.lrc import parse_lrc
from lrcsync.core.models import CatalogAlbum, CatalogTrack, LyricPayload
from lrcsync.core.watermark import WATERMARK_KEY, WATERMARK_PREFIX
from lrcsync.exceptions import KeywordForbiddenError


def pytest_addoption(parser):
    parser.addoption(
        "--run-network",
        action="store_true",
        default=False,
        help="Run tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    run_network = config.getoption("--run-network") or os.getenv(
        "RUN_INTEGRATION_TESTS"
    ) == "1"
    if run_network:
        return

    skip_network = pytest.mark.skip(
        reason="requires network access (use --run-network or RUN_INTEGRATION_TESTS=1)"
    )
    for item in items:
        if "network" in item.keywords:
            item.add_marker(skip_network)


# =============================================================================
# Helpers
# =============================================================================


def make_watermark(music_id) -> str:
    """Encrypt a provider watermark the way downloaded files carry it."""
    payload = "music:" + json.dumps({"musicId": music_id, "musicName": "Song"})
    padder = padding.PKCS7(128).padder()
    data = padder.update(payload.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(WATERMARK_KEY), modes.ECB()).encryptor()
    encrypted = encryptor.update(data) + encryptor.finalize()
    return WATERMARK_PREFIX + base64.b64encode(encrypted).decode("ascii")


def make_payload(
    track_id: int,
    raw: Optional[str] = "[00:01.00]Hello\n[00:02.00]World\n",
    raw_version: int = 1,
    translated: Optional[str] = None,
    translated_version: int = 0,
) -> LyricPayload:
    return LyricPayload(
        track_id=track_id,
        collected=True,
        raw=parse_lrc(raw) if raw else None,
        raw_version=raw_version,
        translated=parse_lrc(translated) if translated else None,
        translated_version=translated_version,
    )


class FakeCatalog:
    """Catalog double with canned results. Every call is recorded."""

    def __init__(self):
        self.tracks: List[CatalogTrack] = []
        self.albums: List[CatalogAlbum] = []
        self.album_tracks: Dict[int, List[CatalogTrack]] = {}
        self.lyrics: Dict[int, LyricPayload] = {}
        self.forbidden = False
        self.error: Optional[Exception] = None
        self.login_result = True
        self.logged_in = False
        self.calls: List[tuple] = []

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def _check(self, keywords):
        if self.error is not None:
            raise self.error
        if self.forbidden:
            raise KeywordForbiddenError(keywords)

    def login(self, account, password):
        self.calls.append(("login", account))
        self.logged_in = self.login_result
        return self.login_result

    def search_tracks(self, track, limit, with_artists):
        self.calls.append(("search_tracks", track.name, with_artists))
        self._check(track.name)
        return list(self.tracks)

    def search_albums(self, album, limit, with_artists):
        self.calls.append(("search_albums", album.name, with_artists))
        self._check(album.name)
        return list(self.albums)

    def get_album_tracks(self, album_id):
        self.calls.append(("get_album_tracks", album_id))
        return list(self.album_tracks.get(album_id, []))

    def get_lyric(self, track_id):
        self.calls.append(("get_lyric", track_id))
        if track_id not in self.lyrics:
            return make_payload(track_id)
        return self.lyrics[track_id]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings():
    """Default settings without network retries."""
    settings = Settings()
    settings.catalog.max_retries = 0
    return settings


@pytest.fixture
def database(tmp_path):
    return LyricDatabase(tmp_path / ".lrcsync")


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep settings environment variables from leaking into tests."""
    for name in ("LRCSYNC_SETTINGS", "LRCSYNC_SEARCH_LIMIT", "LRCSYNC_API_SERVER"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def watermark():
    return make_watermark


@pytest.fixture
def payload():
    return make_payload
