"""Pipeline configuration defaults."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path

DEFAULT_SHARD_SIZE = 50_000
DEFAULT_MAX_ID = 45_000_000
DEFAULT_SNIPPET_CHARS = 85

# Day-boundary shifts beyond a full day make no sense for a calendar index.
_MAX_OFFSET_MINUTES = 24 * 60


class ConfigError(ValueError):
    """Raised when a pipeline option has an invalid value."""


@dataclass(slots=True)
class AppConfig:
    export_dir: Path = Path("data/raw")
    shards_dir: Path = Path("docs/shards")
    manifest_path: Path = Path("docs/manifest.json")
    filter_manifest_path: Path = Path("docs/filter-manifest.json")
    date_index_path: Path = Path("docs/date-index.json")
    shard_size: int = DEFAULT_SHARD_SIZE
    max_id: int = DEFAULT_MAX_ID
    gzip_shards: bool = False
    tz_offset_minutes: int = 0
    snippet_chars: int = DEFAULT_SNIPPET_CHARS
    strict_bound: bool = False

    def __post_init__(self) -> None:
        if self.shard_size <= 0:
            raise ConfigError(f"shard size must be positive, got {self.shard_size}")
        if self.max_id < 2:
            raise ConfigError(f"sieve bound must be at least 2, got {self.max_id}")
        if self.snippet_chars < 0:
            raise ConfigError(f"snippet length cannot be negative, got {self.snippet_chars}")
        if abs(self.tz_offset_minutes) > _MAX_OFFSET_MINUTES:
            raise ConfigError(
                f"tz offset must be within ±{_MAX_OFFSET_MINUTES} minutes, "
                f"got {self.tz_offset_minutes}"
            )

    def resolve_paths(self, base_dir: Path | None = None) -> None:
        """Resolve relative paths against ``base_dir`` in place."""
        if base_dir is None:
            return
        for name in (
            "export_dir",
            "shards_dir",
            "manifest_path",
            "filter_manifest_path",
            "date_index_path",
        ):
            value = Path(getattr(self, name))
            if not value.is_absolute():
                setattr(self, name, base_dir / value)


def generation_time() -> float:
    """Seconds since epoch used to stamp generated documents.

    Honours ``SOURCE_DATE_EPOCH`` so repeated runs can be made reproducible.
    """
    pinned = os.environ.get("SOURCE_DATE_EPOCH")
    if pinned:
        try:
            return float(int(pinned))
        except ValueError as exc:
            raise ConfigError(f"SOURCE_DATE_EPOCH must be an integer, got {pinned!r}") from exc
    return time.time()
