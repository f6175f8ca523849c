"""Per-filter match counts over the shard set.

For every filter category the manifest lists the shards that contain at
least one match, each with its count and the running total through that
shard, so a client can page through one filter without opening shards that
have nothing to show.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence

from primeshards.index.storage import ShardStore
from primeshards.primes.tags import FILTER_CATEGORIES, FilterCategory
from primeshards.utils.files import shard_path, write_json

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ShardCount:
    idx: int
    count: int
    cumulative: int


@dataclass(slots=True)
class FilterEntry:
    total: int = 0
    shards: List[ShardCount] = field(default_factory=list)

    def add(self, idx: int, count: int) -> None:
        if count <= 0:
            return
        self.total += count
        self.shards.append(ShardCount(idx=idx, count=count, cumulative=self.total))


@dataclass(slots=True)
class FilterManifest:
    filters: Dict[str, FilterEntry]
    scanned: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            name: {
                "total": entry.total,
                "shards": [
                    {"idx": shard.idx, "count": shard.count, "cumulative": shard.cumulative}
                    for shard in entry.shards
                ],
            }
            for name, entry in self.filters.items()
        }


def count_shard(path: Path, categories: Sequence[FilterCategory]) -> Dict[str, int]:
    """Match counts for one shard, read-only."""
    with ShardStore(path, readonly=True) as store:
        return {category.name: store.count_matching(category.pattern) for category in categories}


def build_filter_manifest(
    shards_dir: Path,
    shard_indices: Sequence[int],
    *,
    categories: Sequence[FilterCategory] = FILTER_CATEGORIES,
) -> FilterManifest:
    """Scan shards in ascending index order and accumulate per-filter counts.

    A shard that is missing or unreadable is recorded in ``failed`` and
    contributes nothing; counts from other shards are kept.
    """
    manifest = FilterManifest(filters={category.name: FilterEntry() for category in categories})
    for idx in sorted(shard_indices):
        path = shard_path(shards_dir, idx)
        LOGGER.info("Processing shard %d", idx)
        try:
            counts = count_shard(path, categories)
        except (sqlite3.Error, OSError) as exc:
            LOGGER.error("Failed to read shard %s: %s", path, exc)
            manifest.failed.append(idx)
            continue
        for category in categories:
            manifest.filters[category.name].add(idx, counts[category.name])
        manifest.scanned.append(idx)
    return manifest


def save_filter_manifest(manifest: FilterManifest, path: Path) -> None:
    write_json(path, manifest.to_dict(), indent=2)
