"""Utility helpers for working with files."""

from __future__ import annotations

import gzip
import json
import re
import shutil
from pathlib import Path
from typing import Any, Iterable, Iterator, List

EXPORT_SUFFIX = ".json.gz"
SHARD_NAME_RE = re.compile(r"^shard_(\d+)\.sqlite$")


def iter_export_paths(inputs: Iterable[Path]) -> Iterator[Path]:
    """Yield export files from input paths, descending into directories in name order."""
    for item in inputs:
        if item.is_dir():
            yield from iter_export_paths(sorted(item.glob(f"*{EXPORT_SUFFIX}")))
        elif item.is_file() and item.name.endswith(EXPORT_SUFFIX):
            yield item


def shard_path(shards_dir: Path, index: int) -> Path:
    return Path(shards_dir) / f"shard_{index}.sqlite"


def list_shard_indices(shards_dir: Path) -> List[int]:
    """Indices of the ``shard_N.sqlite`` files present, ascending."""
    shards_dir = Path(shards_dir)
    if not shards_dir.is_dir():
        return []
    indices = []
    for child in shards_dir.iterdir():
        match = SHARD_NAME_RE.match(child.name)
        if match:
            indices.append(int(match.group(1)))
    return sorted(indices)


def gzip_file(src: Path, *, level: int = 9) -> Path | None:
    """Write ``src.gz`` next to ``src``.

    Returns the compressed path, or ``None`` when an existing archive is
    non-empty and at least as new as the source.
    """
    dst = src.with_name(src.name + ".gz")
    if dst.exists():
        dst_stat = dst.stat()
        if dst_stat.st_size > 0 and dst_stat.st_mtime >= src.stat().st_mtime:
            return None
    with src.open("rb") as handle, gzip.open(dst, "wb", compresslevel=level) as out:
        shutil.copyfileobj(handle, out, 1 << 20)
    return dst


def write_json(path: Path, payload: Any, *, indent: int | None = None) -> None:
    """Fully overwrite ``path`` with ``payload`` as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(payload, indent=indent, ensure_ascii=False), encoding="utf-8")
    tmp.replace(path)


def read_json(path: Path) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))
