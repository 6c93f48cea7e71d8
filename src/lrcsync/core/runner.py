"""Drive a lyric sync run over a directory of audio files."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

import requests

from ..config import Settings, get_database_path
from ..exceptions import CatalogError, TagReadError, ValidationError
from ..utils.logging import get_logger
from .caches import RunCaches
from .catalog import CatalogClient
from .database import LyricDatabase
from .identity import build_album_identity, build_track_identity
from .lyrics import LyricOutcome, LyricWriter, lrc_path_for
from .matching import MatchingEngine
from .models import AudioTags
from .prompt import NonInteractivePrompter, Prompter
from .tags import read_tags

logger = get_logger(__name__)

DEFAULT_WORKERS = 4

TagResult = Union[AudioTags, TagReadError]


@dataclass
class RunStats:
    """Per-run counters, one outcome per audio file."""

    files: int = 0
    skipped_existing: int = 0
    unresolved: int = 0
    failed: int = 0
    outcomes: Dict[LyricOutcome, int] = field(default_factory=dict)

    def record(self, outcome: LyricOutcome) -> None:
        self.outcomes[outcome] = self.outcomes.get(outcome, 0) + 1

    def count(self, outcome: LyricOutcome) -> int:
        return self.outcomes.get(outcome, 0)

    @property
    def written(self) -> int:
        return (
            self.count(LyricOutcome.WRITTEN)
            + self.count(LyricOutcome.UPDATED)
            + self.count(LyricOutcome.OVERWRITTEN)
        )

    def summary(self) -> str:
        parts = [
            f"{self.files} file(s)",
            f"{self.written} lyric(s) written",
            f"{self.count(LyricOutcome.UP_TO_DATE)} up to date",
            f"{self.count(LyricOutcome.SKIPPED) + self.skipped_existing} skipped",
            f"{self.unresolved} unresolved",
            f"{self.count(LyricOutcome.NOT_COLLECTED)} without lyric",
            f"{self.count(LyricOutcome.INSTRUMENTAL)} instrumental",
            f"{self.count(LyricOutcome.UNAVAILABLE)} unavailable",
            f"{self.failed} failed",
        ]
        return ", ".join(parts)


class LyricSyncRunner:
    """Walks a directory and brings every audio file's lyric up to date.

    Tag reading can run on a thread pool (``batch``); resolution and lyric
    writing always run one file at a time because they may prompt.
    """

    def __init__(
        self,
        directory: Path,
        settings: Settings,
        catalog: Optional[CatalogClient] = None,
        prompter: Optional[Prompter] = None,
        database: Optional[LyricDatabase] = None,
        update_only: bool = False,
        batch: bool = False,
        workers: int = DEFAULT_WORKERS,
        tag_reader: Callable[[Path], AudioTags] = read_tags,
    ):
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise ValidationError(f"Not a directory: {self.directory}")
        if workers < 1:
            raise ValidationError("workers must be at least 1")

        self.settings = settings
        self.catalog = catalog or CatalogClient(
            settings.catalog, settings.search.whole_word_replace
        )
        self.prompter = prompter or NonInteractivePrompter()
        self.database = database or LyricDatabase.load(get_database_path(self.directory))
        self.update_only = update_only
        self.batch = batch
        self.workers = workers
        self.tag_reader = tag_reader

        self.caches = RunCaches()
        self.engine = MatchingEngine(
            settings, self.catalog, self.database, self.caches, self.prompter
        )
        self.writer = LyricWriter(self.engine.get_lyric, self.database, settings.lyric)

    # ----------------------
    # Enumeration
    # ----------------------
    def is_audio_file(self, path: Path) -> bool:
        extensions = {e.lower() for e in self.settings.search.audio_extensions}
        return path.is_file() and path.suffix.lower() in extensions

    def enumerate_files(self) -> List[Path]:
        """Audio files under the directory, recursively, in sorted order."""
        return sorted(p for p in self.directory.rglob("*") if self.is_audio_file(p))

    def can_skip(self, audio_path: Path) -> bool:
        """An existing lyric that may be neither updated nor overwritten."""
        lyric = self.settings.lyric
        return lrc_path_for(audio_path).exists() and not lyric.auto_update and not lyric.overwriting

    def _read(self, path: Path) -> TagResult:
        try:
            return self.tag_reader(path)
        except TagReadError as e:
            return e
        except Exception as e:
            logger.debug(f"Tag reader failed on {path}", exc_info=True)
            return TagReadError(f"Cannot read tags of {path.name}: {e}")

    def iter_tags(self, paths: List[Path]) -> Iterator[Tuple[Path, TagResult]]:
        """Tags for each path, in order. Read ahead on a pool in batch mode."""
        if not self.batch:
            for path in paths:
                yield path, self._read(path)
            return
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            yield from zip(paths, executor.map(self._read, paths))

    # ----------------------
    # Run
    # ----------------------
    def login(self, account: str, password: str) -> None:
        """Log in to the catalog.

        A failed login falls back to anonymous requests unless the operator
        chooses to stop the run.
        """
        logger.info("Logging in...")
        if self.catalog.login(account, password):
            logger.info("Logged in")
            return
        logger.error("Login failed")
        if self.prompter.confirm("Login failed. Stop the run to retry logging in?"):
            raise ValidationError("Login failed")
        logger.info("Continuing without logging in")

    def run(self, account: Optional[str] = None, password: Optional[str] = None) -> RunStats:
        if account and password:
            self.login(account, password)
        else:
            logger.info("Running without login; logging in avoids most catalog errors")

        stats = RunStats()
        paths = []
        for path in self.enumerate_files():
            stats.files += 1
            if self.can_skip(path):
                logger.info(
                    f"Lyric for {path.name} exists and both auto-update and overwriting "
                    "are disabled, skipping"
                )
                stats.skipped_existing += 1
                continue
            paths.append(path)

        for path, tags in self.iter_tags(paths):
            self.process_file(path, tags, stats)

        self.database.save()
        logger.info(f"Done: {stats.summary()}")
        return stats

    def process_file(self, path: Path, tags: TagResult, stats: RunStats) -> None:
        logger.info(f"Processing {path.name}")
        if isinstance(tags, TagReadError):
            logger.error(f"Skipping {path.name}: {tags}")
            stats.failed += 1
            return

        track = build_track_identity(tags, self.settings.search)
        album = build_album_identity(tags, self.settings.search)
        record = self.engine.resolve_track(
            track, album, tags=tags, path=path, allow_search=not self.update_only
        )
        if record is None:
            if self.update_only:
                logger.info(f"{path.name} is not known yet, skipping in update-only mode")
            else:
                logger.warning(f"Cannot find the catalog ID of {path.name}")
            stats.unresolved += 1
            return

        try:
            outcome = self.writer.sync(record, lrc_path_for(path))
        except (CatalogError, requests.exceptions.RequestException) as e:
            logger.error(f"Cannot fetch lyric for {path.name}: {e}")
            stats.failed += 1
            return
        except OSError as e:
            logger.error(f"Cannot write lyric for {path.name}: {e}")
            stats.failed += 1
            return
        stats.record(outcome)
