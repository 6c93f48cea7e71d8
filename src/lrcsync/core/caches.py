"""In-run caches shared by the matching engine and the lyric writer.

The runner owns one :class:`RunCaches` per run. Each cache guards its map with
its own lock so lookups stay consistent if the resolution phase is ever
parallelized.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

from .models import CatalogAlbum, CatalogTrack, LyricPayload

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

# Marker for "looked up and nothing found"
_MISSING = object()


class LockedCache(Generic[K, V]):
    """A dict behind a lock, with a get-or-compute helper."""

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[K, V] = {}

    def __contains__(self, key: K) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def get(self, key: K, default=None):
        with self._lock:
            return self._items.get(key, default)

    def put(self, key: K, value: V) -> None:
        with self._lock:
            self._items[key] = value

    def get_or_compute(self, key: K, compute: Callable[[], V]) -> V:
        """Return the cached value, computing and storing it on a miss.

        The lock is held while computing so a key is never fetched twice.
        Exceptions from ``compute`` propagate and nothing is stored.
        """
        with self._lock:
            if key in self._items:
                return self._items[key]
            value = compute()
            self._items[key] = value
            return value


class AlbumMatchCache:
    """Album resolutions keyed by normalized album name, failures included."""

    def __init__(self):
        self._cache: LockedCache[str, object] = LockedCache()

    def lookup(self, name: str) -> Tuple[bool, Optional[CatalogAlbum]]:
        """Return ``(found, album)``; ``album`` is None for a memoized failure."""
        value = self._cache.get(name, _MISSING)
        if value is _MISSING:
            return False, None
        return True, value

    def store(self, name: str, album: Optional[CatalogAlbum]) -> None:
        self._cache.put(name, album)

    def __len__(self) -> int:
        return len(self._cache)


@dataclass
class RunCaches:
    albums: AlbumMatchCache = field(default_factory=AlbumMatchCache)
    # album ID -> tracks whose lyric is collected
    album_tracks: LockedCache[int, List[CatalogTrack]] = field(default_factory=LockedCache)
    # track ID -> lyric payload
    lyrics: LockedCache[int, LyricPayload] = field(default_factory=LockedCache)
