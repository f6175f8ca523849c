"""SQLite shard files."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Sequence

from primeshards.models import CandidateRecord

COLUMNS = ("idx", "id", "title", "user", "score", "time", "type", "prime_type")


class ShardStore:
    """One shard: a single ``items`` table ordered by global rank."""

    def __init__(self, db_path: Path, *, readonly: bool = False) -> None:
        self.db_path = Path(db_path)
        self.readonly = readonly
        if readonly:
            if not self.db_path.exists():
                raise FileNotFoundError(f"Shard not found: {self.db_path}")
            self._conn = sqlite3.connect(f"{self.db_path.resolve().as_uri()}?mode=ro", uri=True)
        else:
            self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        if not readonly:
            # Shards are served as static files, so no WAL side files.
            self._conn.execute("PRAGMA journal_mode=DELETE;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")

    @classmethod
    def create(cls, db_path: Path) -> "ShardStore":
        """Open a fresh shard, removing whatever was left at ``db_path``."""
        db_path = Path(db_path)
        for suffix in ("", "-journal", ".gz"):
            leftover = db_path.with_name(db_path.name + suffix)
            if leftover.exists():
                leftover.unlink()
        store = cls(db_path)
        store._create_schema()
        return store

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "ShardStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _create_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE items (
                    idx INTEGER PRIMARY KEY,
                    id INTEGER,
                    title TEXT,
                    user TEXT,
                    score INTEGER,
                    time INTEGER,
                    type TEXT,
                    prime_type TEXT
                )
                """
            )
            conn.execute("CREATE INDEX idx_prime_type ON items(prime_type)")

    def insert_records(self, start_rank: int, records: Sequence[CandidateRecord]) -> None:
        """Insert records with consecutive ranks starting at ``start_rank``.

        Should be called within a transaction.
        """
        self._conn.executemany(
            """
            INSERT INTO items (idx, id, title, user, score, time, type, prime_type)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                (
                    start_rank + offset,
                    record.id,
                    record.title,
                    record.user,
                    record.score,
                    record.time,
                    record.type,
                    record.prime_type,
                )
                for offset, record in enumerate(records)
            ),
        )

    def count_matching(self, pattern: str) -> int:
        """Rows whose ``prime_type`` contains ``pattern``."""
        row = self._conn.execute(
            "SELECT COUNT(*) FROM items WHERE instr(prime_type, ?) > 0",
            (pattern,),
        ).fetchone()
        return int(row[0])

    def rows(self) -> List[dict]:
        """All rows in rank order."""
        cursor = self._conn.execute(f"SELECT {', '.join(COLUMNS)} FROM items ORDER BY idx")
        return [dict(row) for row in cursor.fetchall()]
