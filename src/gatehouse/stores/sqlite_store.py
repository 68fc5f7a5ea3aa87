"""BucketStore implementation backed by a local SQLite database."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Iterator
from pathlib import Path

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS bucket_values (
    bucket TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    PRIMARY KEY (bucket, key, value)
);
"""

# (statement, rows for executemany)
Statement = tuple[str, list[tuple[str, ...]]]


# Bound parameters per statement; SQLite builds before 3.32 cap this at 999.
MAX_PARAMS = 999


def _placeholders(n: int) -> str:
    return ", ".join("?" * n)


def _chunked(items: list[str], size: int | None = None) -> Iterator[list[str]]:
    """Split *items* into lists of at most *size* (one slot left for the bucket)."""
    size = size or max(MAX_PARAMS - 1, 1)
    for start in range(0, len(items), size):
        yield items[start:start + size]


class SQLiteStore:
    """BucketStore implementation using SQLite with WAL mode.

    Every (bucket, key, value) triple is one row, so set-insert and
    set-subtract are plain INSERT OR IGNORE / DELETE statements. A
    transaction is a list of statements run by ``end()`` under one write
    lock, which makes each batch atomic on this backend even though the
    engine does not rely on it.
    """

    def __init__(self, db_path: str = ".gatehouse/acl.db") -> None:
        if db_path != ":memory:":
            path = Path(db_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            db_path = str(path)

        self.db_path = db_path
        # isolation_level=None => autocommit mode, giving us manual
        # transaction control in end().
        self._conn = sqlite3.connect(self.db_path, isolation_level=None, timeout=5)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    # -- BucketStore protocol --------------------------------------------------

    def get(self, bucket: str, key: str) -> set[str]:
        rows = self._conn.execute(
            "SELECT value FROM bucket_values WHERE bucket = ? AND key = ?",
            (bucket, str(key)),
        ).fetchall()
        return {r[0] for r in rows}

    def union(self, bucket: str, keys: Iterable[str]) -> set[str]:
        result: set[str] = set()
        for chunk in _chunked([str(k) for k in keys]):
            rows = self._conn.execute(
                f"SELECT DISTINCT value FROM bucket_values "
                f"WHERE bucket = ? AND key IN ({_placeholders(len(chunk))})",
                (bucket, *chunk),
            ).fetchall()
            result.update(r[0] for r in rows)
        return result

    def unions(self, buckets: Iterable[str], keys: Iterable[str]) -> dict[str, set[str]]:
        """Union *keys* in every bucket with grouped queries.

        Buckets and keys are split so no statement binds more than
        ``MAX_PARAMS`` values.
        """
        buckets = list(buckets)
        keys = [str(k) for k in keys]
        result: dict[str, set[str]] = {b: set() for b in buckets}
        half = max(MAX_PARAMS // 2, 1)
        for bucket_chunk in _chunked(buckets, half):
            for key_chunk in _chunked(keys, half):
                rows = self._conn.execute(
                    f"SELECT DISTINCT bucket, value FROM bucket_values "
                    f"WHERE bucket IN ({_placeholders(len(bucket_chunk))}) "
                    f"AND key IN ({_placeholders(len(key_chunk))})",
                    (*bucket_chunk, *key_chunk),
                ).fetchall()
                for bucket, value in rows:
                    result[bucket].add(value)
        return result

    def begin(self) -> list[Statement]:
        return []

    def add(self, transaction: list[Statement], bucket: str, key: str, values: Iterable[str]) -> None:
        rows = [(bucket, str(key), str(v)) for v in values]
        if rows:
            transaction.append(
                ("INSERT OR IGNORE INTO bucket_values (bucket, key, value) VALUES (?, ?, ?)", rows)
            )

    def remove(self, transaction: list[Statement], bucket: str, key: str, values: Iterable[str]) -> None:
        rows = [(bucket, str(key), str(v)) for v in values]
        if rows:
            transaction.append(
                ("DELETE FROM bucket_values WHERE bucket = ? AND key = ? AND value = ?", rows)
            )

    def delete(self, transaction: list[Statement], bucket: str, keys: Iterable[str]) -> None:
        rows = [(bucket, str(k)) for k in keys]
        if rows:
            transaction.append(("DELETE FROM bucket_values WHERE bucket = ? AND key = ?", rows))

    def end(self, transaction: list[Statement]) -> None:
        if not transaction:
            return
        cursor = self._conn.cursor()
        try:
            cursor.execute("BEGIN IMMEDIATE")
            for statement, rows in transaction:
                cursor.executemany(statement, rows)
            cursor.execute("COMMIT")
        except Exception:
            self._conn.rollback()
            raise

    def clean(self) -> None:
        self._conn.execute("DELETE FROM bucket_values")

    # -- extras ----------------------------------------------------------------

    def stats(self) -> dict[str, int]:
        """Count keys per non-empty bucket."""
        rows = self._conn.execute(
            "SELECT bucket, COUNT(DISTINCT key) FROM bucket_values GROUP BY bucket ORDER BY bucket"
        ).fetchall()
        return {bucket: count for bucket, count in rows}

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> SQLiteStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
