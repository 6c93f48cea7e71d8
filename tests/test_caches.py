from concurrent.futures import ThreadPoolExecutor

import pytest

from lrcsync.core.caches import AlbumMatchCache, LockedCache
from lrcsync.core.models import CatalogAlbum


def test_get_or_compute_computes_once():
    cache = LockedCache()
    calls = []

    def compute():
        calls.append(1)
        return "value"

    assert cache.get_or_compute(1, compute) == "value"
    assert cache.get_or_compute(1, compute) == "value"
    assert len(calls) == 1
    assert 1 in cache


def test_get_or_compute_from_many_threads():
    cache = LockedCache()
    calls = []

    def compute():
        calls.append(1)
        return len(calls)

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(lambda _: cache.get_or_compute("k", compute), range(32)))

    assert results == [1] * 32
    assert len(calls) == 1


def test_failed_compute_not_stored():
    cache = LockedCache()

    def fail():
        raise RuntimeError("network down")

    with pytest.raises(RuntimeError):
        cache.get_or_compute(1, fail)
    assert 1 not in cache
    assert cache.get_or_compute(1, lambda: "ok") == "ok"


def test_album_cache_distinguishes_failure_from_miss():
    cache = AlbumMatchCache()
    assert cache.lookup("Album") == (False, None)

    cache.store("Album", None)
    assert cache.lookup("Album") == (True, None)

    album = CatalogAlbum("Other", (), 3)
    cache.store("Other", album)
    assert cache.lookup("Other") == (True, album)
    assert len(cache) == 2
