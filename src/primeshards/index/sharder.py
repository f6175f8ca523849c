"""Ingest, filter and shard-writing pipeline."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Sequence

from primeshards.config import DEFAULT_SHARD_SIZE, DEFAULT_SNIPPET_CHARS, generation_time
from primeshards.index.manifest import PrimaryManifest, save_manifest
from primeshards.index.storage import ShardStore
from primeshards.ingestion.export_loader import ReadStats, iter_raw_items
from primeshards.models import ANONYMOUS, CandidateRecord, RawItem, ShardInfo
from primeshards.primes.sieve import PrimeSieve, SieveBoundError
from primeshards.primes.tags import PrimeTag, TagKind
from primeshards.utils.files import gzip_file, list_shard_indices, shard_path
from primeshards.utils.text import display_title

LOGGER = logging.getLogger(__name__)

SUBMISSION_TYPE = "story"


class ShardWriteError(RuntimeError):
    """Raised when a shard file cannot be created or filled."""


@dataclass(slots=True)
class IngestStats:
    files: int = 0
    lines: int = 0
    malformed: int = 0
    out_of_range: int = 0
    duplicates: int = 0
    kept: int = 0
    shards: List[ShardInfo] = field(default_factory=list)

    def add_read(self, read: ReadStats) -> None:
        self.files += 1
        self.lines += read.lines
        self.malformed += read.malformed


def build_candidate(item: RawItem, tags: List[PrimeTag], *, snippet_chars: int) -> CandidateRecord:
    """Candidate record with placeholder values for missing fields."""
    return CandidateRecord(
        id=item.id,
        title=display_title(item.title, item.text, max_chars=snippet_chars),
        user=item.by or ANONYMOUS,
        score=item.score or 0,
        time=item.time,
        type=item.type,
        tags=tags,
    )


def apply_prime_score_tags(records: Iterable[CandidateRecord], sieve: PrimeSieve) -> int:
    """Tag the earliest submission for every prime score.

    Ties on time go to the smaller id. Returns the number of tagged records.
    """
    earliest: Dict[int, CandidateRecord] = {}
    for record in records:
        if record.type != SUBMISSION_TYPE or record.time is None:
            continue
        score = record.score
        if score < 2 or not sieve.is_prime(score):
            continue
        current = earliest.get(score)
        if current is None or (record.time, record.id) < (current.time, current.id):
            earliest[score] = record
    for score in sorted(earliest):
        record = earliest[score]
        record.tags.append(PrimeTag(TagKind.POSTS, (score, record.time)))
    return len(earliest)


def partition(records: Sequence[CandidateRecord], shard_size: int) -> Iterator[tuple[int, Sequence[CandidateRecord]]]:
    """Yield ``(shard index, records)`` in rank order."""
    for start in range(0, len(records), shard_size):
        yield start // shard_size, records[start : start + shard_size]


def shard_info(sid: int, records: Sequence[CandidateRecord]) -> ShardInfo:
    times = [record.time for record in records if record.time is not None]
    return ShardInfo(
        sid=sid,
        count=len(records),
        id_min=records[0].id,
        id_max=records[-1].id,
        tmin=min(times) if times else None,
        tmax=max(times) if times else None,
    )


class ShardBuilder:
    """Turns export files into sorted, fixed-size SQLite shards."""

    def __init__(
        self,
        sieve: PrimeSieve,
        *,
        shard_size: int = DEFAULT_SHARD_SIZE,
        snippet_chars: int = DEFAULT_SNIPPET_CHARS,
        strict_bound: bool = False,
    ) -> None:
        self.sieve = sieve
        self.shard_size = shard_size
        self.snippet_chars = snippet_chars
        self.strict_bound = strict_bound

    def collect(self, paths: Sequence[Path], stats: IngestStats) -> List[CandidateRecord]:
        """Read every export file and return the prime-id candidates sorted by id."""
        bound = self.sieve.bound
        collected: Dict[int, CandidateRecord] = {}

        for position, path in enumerate(paths, start=1):
            LOGGER.info("Parsing file %d/%d: %s", position, len(paths), path.name)
            read = ReadStats()
            for item in iter_raw_items(path, read):
                if item.id >= bound:
                    stats.out_of_range += 1
                    continue
                if not self.sieve.is_prime(item.id):
                    continue
                if item.id in collected:
                    stats.duplicates += 1
                    continue
                collected[item.id] = build_candidate(
                    item, self.sieve.classify(item.id), snippet_chars=self.snippet_chars
                )
            stats.add_read(read)

        if stats.out_of_range:
            message = f"{stats.out_of_range} items have ids at or above the sieve bound {bound}"
            if self.strict_bound:
                raise SieveBoundError(message)
            LOGGER.warning("%s; they were skipped", message)

        records = list(collected.values())
        tagged = apply_prime_score_tags(records, self.sieve)
        LOGGER.info("Found %d prime items, %d earliest prime-score posts", len(records), tagged)
        records.sort(key=lambda record: record.id)
        stats.kept = len(records)
        return records

    def write_shards(self, records: Sequence[CandidateRecord], shards_dir: Path) -> List[ShardInfo]:
        """Write one shard per ``shard_size`` records; each shard commits before the next opens."""
        shards_dir = Path(shards_dir)
        try:
            shards_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ShardWriteError(f"Cannot create shard directory {shards_dir}: {exc}") from exc

        written: List[ShardInfo] = []
        for sid, chunk in partition(records, self.shard_size):
            path = shard_path(shards_dir, sid)
            try:
                store = ShardStore.create(path)
                try:
                    with store.transaction():
                        store.insert_records(sid * self.shard_size, chunk)
                finally:
                    store.close()
            except (sqlite3.Error, OSError) as exc:
                raise ShardWriteError(f"Failed to write shard {path}: {exc}") from exc
            LOGGER.info("Wrote shard %d (%d items)", sid, len(chunk))
            written.append(shard_info(sid, chunk))
        remove_stale_shards(shards_dir, len(written))
        return written

    def run(
        self,
        paths: Sequence[Path],
        shards_dir: Path,
        manifest_path: Path,
        *,
        generated_at: float | None = None,
    ) -> IngestStats:
        """Full ingest: collect, shard, then write the primary manifest."""
        stats = IngestStats()
        records = self.collect(paths, stats)
        stats.shards = self.write_shards(records, shards_dir)
        stamp = generation_time() if generated_at is None else generated_at
        manifest = PrimaryManifest(
            total_primes=len(records),
            shard_size=self.shard_size,
            max_id=records[-1].id if records else None,
            generated_at=int(stamp * 1000),
            shards=stats.shards,
        )
        save_manifest(manifest, manifest_path)
        LOGGER.info("Wrote manifest %s", manifest_path)
        return stats


def gzip_shards(shards: Iterable[ShardInfo], shards_dir: Path) -> List[Path]:
    """Compress every written shard; returns the archives actually (re)written."""
    written = []
    for shard in shards:
        src = shard_path(shards_dir, shard.sid)
        dst = gzip_file(src)
        if dst is None:
            LOGGER.debug("Archive for shard %d is up to date", shard.sid)
            continue
        LOGGER.info("gzip %s: %.2fMB", src.name, dst.stat().st_size / 1024 / 1024)
        written.append(dst)
    return written


def remove_stale_shards(shards_dir: Path, shard_count: int) -> int:
    """Delete shard files left over from an earlier, larger run."""
    removed = 0
    for sid in list_shard_indices(shards_dir):
        if sid < shard_count:
            continue
        path = shard_path(shards_dir, sid)
        for stale in (path, path.with_name(path.name + ".gz")):
            if stale.exists():
                stale.unlink()
        LOGGER.info("Removed stale shard %d", sid)
        removed += 1
    return removed
