"""Configuration settings for lrcsync.

Settings are built once at startup by :func:`load_settings` and passed to the
components that need them. Values come from the built-in defaults below, an
optional JSON settings file, and a few environment variables.
"""

import codecs
import json
import os
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ConfigError

# Database file written inside the scanned directory
DATABASE_FILE_NAME = ".lrcsync"

# Lyric output modes, tried in the configured order
LYRIC_MODES = ("merged", "raw", "translated")

DEFAULT_AUDIO_EXTENSIONS = [
    ".aac", ".ape", ".flac", ".m4a", ".mp3", ".ogg", ".opus", ".wav", ".wv",
]
DEFAULT_API_SERVER = "http://localhost:3000"


@dataclass
class SearchSettings:
    audio_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_AUDIO_EXTENSIONS))
    # Characters that split a single artist tag into several artists
    separators: str = ",;/、&"
    # Whole-string replacements applied before searching and scoring
    whole_word_replace: Dict[str, str] = field(
        default_factory=lambda: {"Various Artists": "群星", "V.A.": "群星"}
    )
    limit: int = 15


@dataclass
class FuzzySettings:
    try_ignoring_artists: bool = True
    try_ignoring_extra_info: bool = True
    extra_info_start: str = "(（[【-"
    covers: List[str] = field(
        default_factory=lambda: [
            "cover", "翻自", "remix", "live", "acoustic", "instrumental", "inst.", "伴奏", "version",
        ]
    )
    featurings: List[str] = field(default_factory=lambda: ["feat.", "ft.", "featuring", "with "])
    strip_covers: bool = True
    strip_featurings: bool = True


@dataclass
class MatchSettings:
    minimum_similarity: float = 0.2
    char_replace: Dict[str, str] = field(
        default_factory=lambda: {"’": "'", "‘": "'", "“": '"', "”": '"', "・": "·", "～": "~"}
    )


@dataclass
class LyricSettings:
    modes: List[str] = field(default_factory=lambda: ["merged", "raw"])
    simplify_translated: bool = True
    auto_update: bool = True
    overwriting: bool = False
    # Characters trimmed from the end of every lyric line
    trim_chars: str = "/ "
    encoding: str = "utf-8"


@dataclass
class CatalogSettings:
    # NeteaseCloudMusicApi compatible server, used after logging in
    api_server: str = DEFAULT_API_SERVER
    timeout: float = 10.0
    max_retries: int = 3


@dataclass
class Settings:
    search: SearchSettings = field(default_factory=SearchSettings)
    fuzzy: FuzzySettings = field(default_factory=FuzzySettings)
    match: MatchSettings = field(default_factory=MatchSettings)
    lyric: LyricSettings = field(default_factory=LyricSettings)
    catalog: CatalogSettings = field(default_factory=CatalogSettings)


def get_settings_path() -> Optional[Path]:
    """Get settings file path from environment, if any."""
    settings_path = os.getenv("LRCSYNC_SETTINGS")
    if settings_path:
        return Path(settings_path)
    return None


def get_database_path(directory: Path) -> Path:
    """Get the database file path for a scanned directory."""
    return Path(directory) / DATABASE_FILE_NAME


def _coerce(value: Any, current: Any, name: str) -> Any:
    """Check an override against the type of the default it replaces."""
    if isinstance(current, bool):
        if isinstance(value, bool):
            return value
        raise ConfigError(f"Setting {name} must be true or false")
    if isinstance(current, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise ConfigError(f"Setting {name} must be a number")
    if isinstance(current, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise ConfigError(f"Setting {name} must be an integer")
    if isinstance(current, str):
        if isinstance(value, str):
            return value
        raise ConfigError(f"Setting {name} must be a string")
    if isinstance(current, list):
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return value
        raise ConfigError(f"Setting {name} must be a list of strings")
    if isinstance(current, dict):
        if isinstance(value, dict) and all(isinstance(v, str) for v in value.values()):
            return value
        raise ConfigError(f"Setting {name} must map strings to strings")
    return value


def _merge(target: Any, overrides: Dict[str, Any], path: str = "") -> None:
    known = {f.name: f for f in fields(target)}
    for key, value in overrides.items():
        if key not in known:
            raise ConfigError(f"Unknown setting: {path}{key}")
        current = getattr(target, key)
        if is_dataclass(current):
            if not isinstance(value, dict):
                raise ConfigError(f"Setting {path}{key} must be an object")
            _merge(current, value, f"{path}{key}.")
        else:
            setattr(target, key, _coerce(value, current, f"{path}{key}"))


def load_settings(path: Optional[Path] = None) -> Settings:
    """Build settings from defaults, an optional JSON file and the environment."""
    settings = Settings()

    path = path or get_settings_path()
    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                overrides = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot read settings file {path}: {e}")
        if not isinstance(overrides, dict):
            raise ConfigError(f"Settings file {path} must contain a JSON object")
        _merge(settings, overrides)

    limit = os.getenv("LRCSYNC_SEARCH_LIMIT")
    if limit:
        try:
            settings.search.limit = int(limit)
        except ValueError:
            raise ConfigError(f"Invalid LRCSYNC_SEARCH_LIMIT: {limit}")
    api_server = os.getenv("LRCSYNC_API_SERVER")
    if api_server:
        settings.catalog.api_server = api_server

    validate_settings(settings)
    return settings


def validate_settings(settings: Settings) -> None:
    """Validate configuration values."""
    if not 0.0 <= settings.match.minimum_similarity <= 1.0:
        raise ConfigError("match.minimum_similarity must be between 0 and 1")

    if settings.search.limit <= 0:
        raise ConfigError("search.limit must be positive")

    if not settings.search.audio_extensions:
        raise ConfigError("search.audio_extensions cannot be empty")

    for mode in settings.lyric.modes:
        if mode.lower() not in LYRIC_MODES:
            raise ConfigError(
                f"Unknown lyric mode: {mode}. Use one of: {', '.join(LYRIC_MODES)}"
            )

    for key, value in settings.match.char_replace.items():
        if len(key) != 1 or len(value) != 1:
            raise ConfigError("match.char_replace must map single characters")

    try:
        codec_name = codecs.lookup(settings.lyric.encoding).name
    except LookupError:
        raise ConfigError(f"Unknown lyric encoding: {settings.lyric.encoding}")
    if not codec_name.startswith("utf"):
        raise ConfigError("lyric.encoding must be a UTF encoding")

    if settings.catalog.timeout <= 0:
        raise ConfigError("catalog.timeout must be positive")
