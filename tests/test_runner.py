"""Tests for the directory runner."""

import pytest

from lrcsync.core.database import LyricDatabase
from lrcsync.core.lyrics import LyricOutcome
from lrcsync.core.models import AudioTags, CatalogTrack, TrackIdentity
from lrcsync.core.prompt import NonInteractivePrompter, ScriptedPrompter
from lrcsync.core.runner import LyricSyncRunner, RunStats
from lrcsync.exceptions import CatalogError, TagReadError, ValidationError


@pytest.fixture
def music_dir(tmp_path):
    directory = tmp_path / "music"
    directory.mkdir()
    return directory


def _touch(directory, *names):
    paths = []
    for name in names:
        path = directory / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\x00")
        paths.append(path)
    return paths


class StubTagReader:
    """Returns canned tags by file name and records each read."""

    def __init__(self, tags):
        self.tags = tags
        self.read = []

    def __call__(self, path):
        self.read.append(path.name)
        value = self.tags.get(path.name)
        if value is None:
            raise TagReadError(f"Unsupported file: {path.name}")
        return value


def _runner(music_dir, settings, catalog, tags, **kwargs):
    kwargs.setdefault("database", LyricDatabase.load(music_dir / ".lrcsync"))
    return LyricSyncRunner(
        music_dir, settings, catalog=catalog, tag_reader=StubTagReader(tags), **kwargs
    )


SONG_TAGS = AudioTags(title="Song", artists="Artist")


class TestEnumeration:
    def test_sorted_and_filtered(self, music_dir, settings, catalog):
        _touch(music_dir, "b.mp3", "sub/c.FLAC", "a.mp3", "cover.jpg", "b.lrc")
        runner = _runner(music_dir, settings, catalog, {})
        names = [p.relative_to(music_dir).as_posix() for p in runner.enumerate_files()]
        assert names == ["a.mp3", "b.mp3", "sub/c.FLAC"]

    def test_directory_named_like_audio_ignored(self, music_dir, settings, catalog):
        (music_dir / "album.mp3").mkdir()
        runner = _runner(music_dir, settings, catalog, {})
        assert runner.enumerate_files() == []

    def test_not_a_directory(self, tmp_path, settings, catalog):
        with pytest.raises(ValidationError):
            LyricSyncRunner(tmp_path / "missing", settings, catalog=catalog)

    def test_workers_must_be_positive(self, music_dir, settings, catalog):
        with pytest.raises(ValidationError):
            _runner(music_dir, settings, catalog, {}, workers=0)

    def test_database_loaded_from_directory(self, music_dir, settings, catalog):
        runner = LyricSyncRunner(music_dir, settings, catalog=catalog)
        assert runner.database.path == music_dir / ".lrcsync"


class TestCanSkip:
    def test_existing_lyric_with_updates_disabled(self, music_dir, settings, catalog):
        settings.lyric.auto_update = False
        audio, _ = _touch(music_dir, "a.mp3", "a.lrc")
        runner = _runner(music_dir, settings, catalog, {})
        assert runner.can_skip(audio)

    def test_existing_lyric_with_auto_update(self, music_dir, settings, catalog):
        audio, _ = _touch(music_dir, "a.mp3", "a.lrc")
        runner = _runner(music_dir, settings, catalog, {})
        assert not runner.can_skip(audio)

    def test_no_lyric_yet(self, music_dir, settings, catalog):
        settings.lyric.auto_update = False
        (audio,) = _touch(music_dir, "a.mp3")
        runner = _runner(music_dir, settings, catalog, {})
        assert not runner.can_skip(audio)

    def test_skipped_files_are_not_read(self, music_dir, settings, catalog):
        settings.lyric.auto_update = False
        _touch(music_dir, "a.mp3", "a.lrc")
        runner = _runner(music_dir, settings, catalog, {"a.mp3": SONG_TAGS})

        stats = runner.run()

        assert stats.files == 1
        assert stats.skipped_existing == 1
        assert runner.tag_reader.read == []


class TestRun:
    def test_writes_lyric_and_database(self, music_dir, settings, catalog):
        _touch(music_dir, "song.mp3")
        catalog.tracks = [CatalogTrack("Song", ("Artist",), 42)]
        runner = _runner(music_dir, settings, catalog, {"song.mp3": SONG_TAGS})

        stats = runner.run()

        assert stats.written == 1
        assert stats.count(LyricOutcome.WRITTEN) == 1
        assert (music_dir / "song.lrc").read_text(encoding="utf-8") == (
            "[00:01.00]Hello\n[00:02.00]World\n"
        )
        reloaded = LyricDatabase.load(music_dir / ".lrcsync")
        record = reloaded.match_track(TrackIdentity("Song", ("Artist",)), None)
        assert record.id == 42
        assert record.lyric is not None

    def test_second_run_is_up_to_date(self, music_dir, settings, catalog):
        _touch(music_dir, "song.mp3")
        catalog.tracks = [CatalogTrack("Song", ("Artist",), 42)]
        _runner(music_dir, settings, catalog, {"song.mp3": SONG_TAGS}).run()

        stats = _runner(music_dir, settings, catalog, {"song.mp3": SONG_TAGS}).run()

        assert stats.count(LyricOutcome.UP_TO_DATE) == 1
        assert catalog.count("search_tracks") == 1

    def test_unreadable_tags_fail_the_file_only(self, music_dir, settings, catalog):
        _touch(music_dir, "bad.mp3", "song.mp3")
        catalog.tracks = [CatalogTrack("Song", ("Artist",), 42)]
        runner = _runner(music_dir, settings, catalog, {"song.mp3": SONG_TAGS})

        stats = runner.run()

        assert stats.failed == 1
        assert stats.written == 1

    def test_unresolved(self, music_dir, settings, catalog):
        _touch(music_dir, "song.mp3")
        runner = _runner(music_dir, settings, catalog, {"song.mp3": SONG_TAGS})

        stats = runner.run()

        assert stats.unresolved == 1
        assert not (music_dir / "song.lrc").exists()

    def test_lyric_fetch_error_fails_the_file(self, music_dir, settings, catalog, watermark):
        _touch(music_dir, "song.mp3")

        def broken(track_id):
            raise CatalogError("service busy")

        catalog.get_lyric = broken
        tags = AudioTags(title="Song", artists="Artist", comment=watermark(42))
        runner = _runner(music_dir, settings, catalog, {"song.mp3": tags})

        stats = runner.run()

        assert stats.failed == 1
        assert runner.database.match_track(TrackIdentity("Song", ("Artist",)), None).id == 42

    @pytest.mark.parametrize("batch", [False, True])
    def test_unexpected_tag_reader_error_fails_the_file(self, music_dir, settings, catalog, batch):
        _touch(music_dir, "bad.mp3", "song.mp3")
        catalog.tracks = [CatalogTrack("Song", ("Artist",), 42)]

        def reader(path):
            if path.name == "bad.mp3":
                raise ValueError("corrupt frame")
            return SONG_TAGS

        runner = LyricSyncRunner(
            music_dir, settings, catalog=catalog, tag_reader=reader, batch=batch,
            database=LyricDatabase.load(music_dir / ".lrcsync"),
        )

        stats = runner.run()

        assert stats.failed == 1
        assert stats.written == 1
        assert (music_dir / "song.lrc").exists()

    def test_every_file_failing_to_read(self, music_dir, settings, catalog):
        _touch(music_dir, "a.mp3", "b.mp3")

        def reader(path):
            raise ValueError("corrupt frame")

        runner = LyricSyncRunner(
            music_dir, settings, catalog=catalog, tag_reader=reader,
            database=LyricDatabase.load(music_dir / ".lrcsync"),
        )

        stats = runner.run()

        assert stats.files == 2
        assert stats.failed == 2

    def test_batch_mode_keeps_order(self, music_dir, settings, catalog):
        names = [f"{i:02d}.mp3" for i in range(8)]
        _touch(music_dir, *names)
        tags = {name: AudioTags(title=f"Song {name[:2]}", artists="Artist") for name in names}
        catalog.tracks = [
            CatalogTrack(f"Song {name[:2]}", ("Artist",), 100 + i) for i, name in enumerate(names)
        ]
        runner = _runner(music_dir, settings, catalog, tags, batch=True, workers=3)

        stats = runner.run()

        assert stats.written == 8
        ids = [
            runner.database.match_track(TrackIdentity(f"Song {name[:2]}", ("Artist",)), None).id
            for name in names
        ]
        assert ids == list(range(100, 108))
        searched = [call[1] for call in catalog.calls if call[0] == "search_tracks"]
        assert searched == [f"Song {name[:2]}" for name in names]


class TestUpdateOnly:
    def test_unknown_files_not_searched(self, music_dir, settings, catalog):
        _touch(music_dir, "song.mp3")
        catalog.tracks = [CatalogTrack("Song", ("Artist",), 42)]
        runner = _runner(music_dir, settings, catalog, {"song.mp3": SONG_TAGS}, update_only=True)

        stats = runner.run()

        assert stats.unresolved == 1
        assert catalog.count("search_tracks") == 0

    def test_known_files_updated(self, music_dir, settings, catalog):
        _touch(music_dir, "song.mp3")
        database = LyricDatabase.load(music_dir / ".lrcsync")
        database.add_track(TrackIdentity("Song", ("Artist",)), None, 42)
        runner = _runner(
            music_dir, settings, catalog, {"song.mp3": SONG_TAGS},
            database=database, update_only=True,
        )

        stats = runner.run()

        assert stats.written == 1
        assert catalog.count("search_tracks") == 0
        assert catalog.count("get_lyric") == 1


class TestLogin:
    def test_no_login_without_account(self, music_dir, settings, catalog):
        _runner(music_dir, settings, catalog, {}).run()
        assert catalog.count("login") == 0

    def test_login(self, music_dir, settings, catalog):
        _runner(music_dir, settings, catalog, {}).run("me@example.com", "secret")
        assert ("login", "me@example.com") in catalog.calls

    def test_failed_login_continues_anonymously(self, music_dir, settings, catalog):
        catalog.login_result = False
        prompter = ScriptedPrompter()
        runner = _runner(music_dir, settings, catalog, {}, prompter=prompter)

        stats = runner.run("me@example.com", "bad")

        assert isinstance(stats, RunStats)
        assert [kind for kind, _ in prompter.asked] == ["confirm"]

    def test_failed_login_unattended(self, music_dir, settings, catalog):
        _touch(music_dir, "song.mp3")
        catalog.login_result = False
        catalog.tracks = [CatalogTrack("Song", ("Artist",), 42)]
        runner = _runner(
            music_dir, settings, catalog, {"song.mp3": SONG_TAGS},
            prompter=NonInteractivePrompter(),
        )

        stats = runner.run("me@example.com", "bad")

        assert stats.written == 1
        assert (music_dir / "song.lrc").exists()

    def test_operator_stops_after_failed_login(self, music_dir, settings, catalog):
        catalog.login_result = False
        prompter = ScriptedPrompter(confirmations=[True])
        runner = _runner(music_dir, settings, catalog, {}, prompter=prompter)

        with pytest.raises(ValidationError, match="Login failed"):
            runner.run("me@example.com", "bad")


class TestRunStats:
    def test_summary(self):
        stats = RunStats(files=5, skipped_existing=1, unresolved=1, failed=1)
        stats.record(LyricOutcome.WRITTEN)
        stats.record(LyricOutcome.UPDATED)
        stats.record(LyricOutcome.SKIPPED)

        assert stats.written == 2
        summary = stats.summary()
        assert summary.startswith("5 file(s), 2 lyric(s) written")
        assert "2 skipped" in summary
        assert "1 failed" in summary
