"""Shared pytest fixtures."""

from __future__ import annotations

import gzip
import json
from pathlib import Path
from typing import Iterable

import pytest

BASE_TIME = 1_600_000_000


def write_export(path: Path, lines: Iterable[object]) -> Path:
    """Write a gzip export; dicts become JSON lines, strings are written verbatim."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with gzip.open(path, "wt", encoding="utf-8") as handle:
        for line in lines:
            handle.write((json.dumps(line) if isinstance(line, dict) else line) + "\n")
    return path


def make_item(item_id: int, **overrides) -> dict:
    item = {
        "id": item_id,
        "type": "story",
        "by": f"user{item_id}",
        "time": BASE_TIME + item_id * 100,
        "title": f"Item {item_id}",
        "score": 1,
    }
    item.update(overrides)
    return item


@pytest.fixture
def export_dir(tmp_path) -> Path:
    """Export directory with ids 0..25 split over two files plus junk lines."""
    raw = tmp_path / "raw"
    write_export(raw / "items_000.json.gz", [make_item(i) for i in range(0, 13)] + ["not json"])
    write_export(
        raw / "items_001.json.gz",
        [make_item(i) for i in range(13, 26)] + ['{"id": "abc"}', ""],
    )
    return raw
