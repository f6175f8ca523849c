"""Tests for CLI commands."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from primeshards.cli import _setup_logging, app
from primeshards.utils.files import shard_path

runner = CliRunner()


def etl_args(export_dir: Path, docs: Path, *extra: str) -> list[str]:
    return [
        "etl",
        "--data", str(export_dir),
        "--out", str(docs / "shards"),
        "--manifest", str(docs / "manifest.json"),
        "--filter-manifest", str(docs / "filter-manifest.json"),
        "--shard-size", "3",
        "--max-id", "20",
        *extra,
    ]


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        with patch("primeshards.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        with patch("primeshards.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestEtlCommand:
    """Tests for the etl command."""

    def test_full_run(self, tmp_path: Path, export_dir: Path) -> None:
        docs = tmp_path / "docs"

        result = runner.invoke(app, etl_args(export_dir, docs))

        assert result.exit_code == 0, result.stdout
        assert "Prime items: 8" in result.stdout
        assert "shards written: 3" in result.stdout
        for sid in range(3):
            assert shard_path(docs / "shards", sid).exists()
        manifest = json.loads((docs / "manifest.json").read_text())
        assert manifest["totalPrimes"] == 8
        filters = json.loads((docs / "filter-manifest.json").read_text())
        assert filters["germain"]["total"] == 3
        assert filters["palindrome"]["total"] == 5

    def test_gzip_option(self, tmp_path: Path, export_dir: Path) -> None:
        docs = tmp_path / "docs"

        result = runner.invoke(app, etl_args(export_dir, docs, "--gzip"))

        assert result.exit_code == 0, result.stdout
        assert (docs / "shards" / "shard_0.sqlite.gz").exists()

    def test_skip_filter_manifest(self, tmp_path: Path, export_dir: Path) -> None:
        docs = tmp_path / "docs"

        result = runner.invoke(app, etl_args(export_dir, docs, "--skip-filter-manifest"))

        assert result.exit_code == 0
        assert not (docs / "filter-manifest.json").exists()

    def test_strict_bound_fails(self, tmp_path: Path, export_dir: Path) -> None:
        docs = tmp_path / "docs"

        result = runner.invoke(app, etl_args(export_dir, docs, "--strict-bound"))

        assert result.exit_code == 1
        assert not (docs / "manifest.json").exists()

    def test_missing_export_dir(self, tmp_path: Path) -> None:
        result = runner.invoke(app, etl_args(tmp_path / "missing", tmp_path / "docs"))
        assert result.exit_code != 0

    def test_invalid_shard_size(self, tmp_path: Path, export_dir: Path) -> None:
        args = etl_args(export_dir, tmp_path / "docs")
        args[args.index("--shard-size") + 1] = "0"

        result = runner.invoke(app, args)

        assert result.exit_code != 0
        assert not (tmp_path / "docs").exists()

    def test_no_export_files(self, tmp_path: Path) -> None:
        empty = tmp_path / "raw"
        empty.mkdir()

        result = runner.invoke(app, etl_args(empty, tmp_path / "docs"))

        assert result.exit_code == 1
        assert "No export files found" in result.stdout
        assert not (tmp_path / "docs" / "manifest.json").exists()

    def test_plain_rerun_after_gzip_leaves_no_archives(self, tmp_path: Path, export_dir: Path) -> None:
        docs = tmp_path / "docs"
        assert runner.invoke(app, etl_args(export_dir, docs, "--gzip")).exit_code == 0

        result = runner.invoke(app, etl_args(export_dir, docs))

        assert result.exit_code == 0, result.stdout
        assert list((docs / "shards").glob("*.gz")) == []

    def test_unreadable_export_file(self, tmp_path: Path) -> None:
        raw = tmp_path / "raw"
        raw.mkdir()
        (raw / "broken.json.gz").write_text("plain text")

        result = runner.invoke(app, etl_args(raw, tmp_path / "docs"))

        assert result.exit_code == 1
        assert not (tmp_path / "docs" / "manifest.json").exists()


class TestFilterManifestCommand:
    """Tests for the filter-manifest command."""

    @pytest.fixture
    def docs(self, tmp_path: Path, export_dir: Path) -> Path:
        docs = tmp_path / "docs"
        result = runner.invoke(app, etl_args(export_dir, docs, "--skip-filter-manifest"))
        assert result.exit_code == 0
        return docs

    def test_from_manifest(self, docs: Path) -> None:
        out = docs / "filters.json"
        result = runner.invoke(
            app,
            [
                "filter-manifest",
                "--shards", str(docs / "shards"),
                "--manifest", str(docs / "manifest.json"),
                "--out", str(out),
            ],
        )

        assert result.exit_code == 0, result.stdout
        assert json.loads(out.read_text())["fermat"]["total"] == 3

    def test_without_manifest_scans_directory(self, docs: Path) -> None:
        out = docs / "filters.json"
        result = runner.invoke(
            app,
            [
                "filter-manifest",
                "--shards", str(docs / "shards"),
                "--manifest", str(docs / "absent.json"),
                "--out", str(out),
            ],
        )

        assert result.exit_code == 0
        assert out.exists()

    def test_missing_shard_exits_nonzero(self, docs: Path) -> None:
        shard_path(docs / "shards", 1).unlink()
        out = docs / "filters.json"

        result = runner.invoke(
            app,
            [
                "filter-manifest",
                "--shards", str(docs / "shards"),
                "--manifest", str(docs / "manifest.json"),
                "--out", str(out),
            ],
        )

        assert result.exit_code == 1
        assert "incomplete" in result.stdout
        assert out.exists()


class TestDateIndexCommand:
    """Tests for the date-index command."""

    def test_builds_index(self, tmp_path: Path, export_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SOURCE_DATE_EPOCH", "0")
        docs = tmp_path / "docs"
        assert runner.invoke(app, etl_args(export_dir, docs)).exit_code == 0
        out = docs / "date-index.json"

        result = runner.invoke(
            app,
            ["date-index", "--manifest", str(docs / "manifest.json"), "--out", str(out)],
        )

        assert result.exit_code == 0, result.stdout
        payload = json.loads(out.read_text())
        assert payload["tz_offset_minutes"] == 0
        assert payload["created_at"] == "1970-01-01T00:00:00.000Z"
        assert payload["days"] == {"2020-09-13": [0, 1, 2]}

    def test_missing_manifest(self, tmp_path: Path) -> None:
        result = runner.invoke(
            app,
            ["date-index", "--manifest", str(tmp_path / "nope.json"), "--out", str(tmp_path / "d.json")],
        )
        assert result.exit_code != 0
        assert not (tmp_path / "d.json").exists()


class TestClassifyCommand:
    def test_prime(self) -> None:
        result = runner.invoke(app, ["classify", "11", "--max-id", "100"])
        assert result.exit_code == 0
        assert "11: germain,palindrome,pkk:3-2,pk2:3-2,pkek2:3-2-2" in result.stdout

    def test_composite(self) -> None:
        result = runner.invoke(app, ["classify", "12", "--max-id", "100"])
        assert result.exit_code == 0
        assert "12 is not prime" in result.stdout

    def test_out_of_range(self) -> None:
        result = runner.invoke(app, ["classify", "150", "--max-id", "100"])
        assert result.exit_code != 0
