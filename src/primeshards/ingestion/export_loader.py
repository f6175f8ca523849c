"""Streaming reader for the compressed line-delimited item export."""

from __future__ import annotations

import gzip
import json
import logging
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from primeshards.models import RawItem

LOGGER = logging.getLogger(__name__)


class ExportReadError(OSError):
    """Raised when an export file cannot be opened or decompressed."""


@dataclass(slots=True)
class ReadStats:
    lines: int = 0
    malformed: int = 0


def iter_raw_items(path: Path, stats: ReadStats | None = None) -> Iterator[RawItem]:
    """Yield one parsed item per line of a ``.json.gz`` export file.

    Lines that are not valid JSON objects with a usable id are skipped.
    """
    stats = stats if stats is not None else ReadStats()
    try:
        with gzip.open(path, "rt", encoding="utf-8", errors="replace") as handle:
            for line in handle:
                stats.lines += 1
                item = _parse_line(line)
                if item is None:
                    stats.malformed += 1
                    continue
                yield item
    except (OSError, EOFError, zlib.error) as exc:
        raise ExportReadError(f"Failed to read export file {path}: {exc}") from exc


def _parse_line(line: str) -> RawItem | None:
    line = line.strip()
    if not line:
        return None
    try:
        payload = json.loads(line)
    except ValueError:
        LOGGER.debug("Dropping unparsable line: %.80s", line)
        return None
    if not isinstance(payload, dict):
        return None
    try:
        return RawItem.from_json(payload)
    except ValueError as exc:
        LOGGER.debug("Dropping item: %s", exc)
        return None
