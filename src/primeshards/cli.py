"""Command line interface for the prime shard pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.table import Table

from primeshards.config import AppConfig, ConfigError, generation_time
from primeshards.index.date_index import build_date_index, save_date_index
from primeshards.index.filter_manifest import (
    FilterManifest,
    build_filter_manifest,
    save_filter_manifest,
)
from primeshards.index.manifest import ManifestError, load_manifest
from primeshards.index.sharder import ShardBuilder, ShardWriteError, gzip_shards
from primeshards.ingestion.export_loader import ExportReadError
from primeshards.primes.sieve import PrimeSieve, SieveBoundError
from primeshards.primes.tags import serialize_tags
from primeshards.utils.files import iter_export_paths, list_shard_indices

console = Console()
app = typer.Typer(help="Prime shards - build the prime-id item store and its indices")

_DEFAULTS = AppConfig()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _make_config(**overrides) -> AppConfig:
    try:
        config = AppConfig(**overrides)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc
    config.resolve_paths(Path.cwd())
    return config


def _print_filter_summary(manifest: FilterManifest) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Filter")
    table.add_column("Items", justify="right")
    table.add_column("Shards", justify="right")
    for name, entry in manifest.filters.items():
        table.add_row(name, str(entry.total), str(len(entry.shards)))
    console.print(table)


def _run_filter_manifest(shards_dir: Path, indices: List[int], out: Path) -> FilterManifest:
    console.print(f"Building filter manifest from {len(indices)} shards...")
    manifest = build_filter_manifest(shards_dir, indices)
    save_filter_manifest(manifest, out)
    _print_filter_summary(manifest)
    console.print(f"Written to [bold]{out}[/bold]")
    if not manifest.complete:
        console.print(
            f"[red]Filter manifest is incomplete, unreadable shards: {manifest.failed}. "
            "Rerun once they are rebuilt.[/red]"
        )
    return manifest


@app.command()
def etl(
    data: Path = typer.Option(_DEFAULTS.export_dir, "--data", help="Directory of .json.gz export files"),
    out: Path = typer.Option(_DEFAULTS.shards_dir, "--out", help="Shard output directory"),
    manifest: Path = typer.Option(_DEFAULTS.manifest_path, "--manifest", help="Primary manifest path"),
    filter_manifest: Path = typer.Option(
        _DEFAULTS.filter_manifest_path, "--filter-manifest", help="Filter manifest path"
    ),
    shard_size: int = typer.Option(_DEFAULTS.shard_size, help="Items per shard"),
    max_id: int = typer.Option(_DEFAULTS.max_id, help="Sieve upper bound for item ids"),
    gzip: bool = typer.Option(False, "--gzip", help="Also write a .gz copy of every shard"),
    strict_bound: bool = typer.Option(
        False, "--strict-bound", help="Fail when ids at or above the bound are found"
    ),
    skip_filter_manifest: bool = typer.Option(
        False, "--skip-filter-manifest", help="Do not rebuild the filter manifest"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Filter the export down to prime ids and write the shard store."""
    _setup_logging(verbose)
    config = _make_config(
        export_dir=data,
        shards_dir=out,
        manifest_path=manifest,
        filter_manifest_path=filter_manifest,
        shard_size=shard_size,
        max_id=max_id,
        gzip_shards=gzip,
        strict_bound=strict_bound,
    )

    if not config.export_dir.is_dir():
        raise typer.BadParameter(f"Export directory not found: {config.export_dir}")
    paths = list(iter_export_paths([config.export_dir]))
    if not paths:
        console.print("[red]No export files found.[/red]")
        raise typer.Exit(code=1)

    sieve = PrimeSieve(config.max_id)
    builder = ShardBuilder(
        sieve,
        shard_size=config.shard_size,
        snippet_chars=config.snippet_chars,
        strict_bound=config.strict_bound,
    )
    console.print(f"Sharding {len(paths)} files into [bold]{config.shards_dir}[/bold]...")
    try:
        stats = builder.run(paths, config.shards_dir, config.manifest_path)
    except (ExportReadError, SieveBoundError, ShardWriteError, ConfigError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    console.print(
        f"Files: {stats.files}, lines: {stats.lines}, malformed: {stats.malformed}, "
        f"out of range: {stats.out_of_range}, duplicates: {stats.duplicates}"
    )
    console.print(f"Prime items: {stats.kept}, shards written: {len(stats.shards)}")

    failed = False
    if not skip_filter_manifest:
        result = _run_filter_manifest(
            config.shards_dir, [shard.sid for shard in stats.shards], config.filter_manifest_path
        )
        failed = not result.complete

    if config.gzip_shards:
        archives = gzip_shards(stats.shards, config.shards_dir)
        console.print(f"Compressed {len(archives)} shards.")

    if failed:
        raise typer.Exit(code=1)


@app.command("filter-manifest")
def filter_manifest_command(
    shards: Path = typer.Option(_DEFAULTS.shards_dir, "--shards", help="Shard directory"),
    manifest: Path = typer.Option(
        _DEFAULTS.manifest_path, "--manifest", help="Primary manifest listing the shards"
    ),
    out: Path = typer.Option(_DEFAULTS.filter_manifest_path, "--out", help="Output path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Count filter matches per shard."""
    _setup_logging(verbose)
    config = _make_config(shards_dir=shards, manifest_path=manifest, filter_manifest_path=out)

    if config.manifest_path.exists():
        try:
            indices = load_manifest(config.manifest_path).shard_indices()
        except (OSError, ValueError) as exc:
            raise typer.BadParameter(str(exc)) from exc
    else:
        indices = list_shard_indices(config.shards_dir)
        if not indices:
            raise typer.BadParameter(f"No shards found in {config.shards_dir}")

    result = _run_filter_manifest(config.shards_dir, indices, config.filter_manifest_path)
    if not result.complete:
        raise typer.Exit(code=1)


@app.command("date-index")
def date_index_command(
    manifest: Path = typer.Option(_DEFAULTS.manifest_path, "--manifest", help="Primary manifest path"),
    out: Path = typer.Option(_DEFAULTS.date_index_path, "--out", help="Output path"),
    tz_offset_minutes: int = typer.Option(
        0, "--tz-offset-minutes", help="Minutes added before cutting days, e.g. -480"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Build the calendar day to shard reverse index."""
    _setup_logging(verbose)
    config = _make_config(
        manifest_path=manifest, date_index_path=out, tz_offset_minutes=tz_offset_minutes
    )

    try:
        primary = load_manifest(config.manifest_path)
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    if not primary.shards:
        raise typer.BadParameter(f"Manifest {config.manifest_path} has no shard time bounds")

    try:
        created_at = generation_time()
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc
    index = build_date_index(primary.shards, config.tz_offset_minutes, created_at=created_at)
    save_date_index(index, config.date_index_path)
    console.print(f"Wrote [bold]{config.date_index_path}[/bold] ({len(index.days)} days indexed)")


@app.command()
def classify(
    item_id: int = typer.Argument(..., help="Item id to classify"),
    max_id: int = typer.Option(_DEFAULTS.max_id, help="Sieve upper bound"),
) -> None:
    """Show the special-prime tags of a single id."""
    if item_id < 0 or item_id >= max_id:
        raise typer.BadParameter(f"id must be in [0, {max_id})")
    config = _make_config(max_id=max_id)
    sieve = PrimeSieve(config.max_id)
    if not sieve.is_prime(item_id):
        console.print(f"{item_id} is not prime.")
        return
    tags = serialize_tags(sieve.classify(item_id))
    console.print(f"{item_id}: {tags or '(no special tags)'}")
