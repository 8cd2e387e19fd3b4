from __future__ import annotations

"""
SQLite ledger store
===================

Ordered byte-keyed store on one SQLite table:

    ledger(key BLOB PRIMARY KEY, value BLOB NOT NULL) WITHOUT ROWID

BLOB keys compare with memcmp, so ``ORDER BY key`` is the byte order the
composite-key codec (`tokenledger.db.kv.Prefix`) relies on: every entry of one
(account, id) holding is contiguous.

The connection runs in autocommit. A unit of work commits through
`SQLiteKV.batch()`, which holds ``BEGIN IMMEDIATE`` for the whole
validate-then-apply step so no other writer can slip in between.
"""

import os
import sqlite3
from typing import Iterator, List, Optional, Tuple, Union

from .kv import KV, Batch

_SCHEMA = """
CREATE TABLE IF NOT EXISTS ledger (
    key   BLOB PRIMARY KEY,
    value BLOB NOT NULL
) WITHOUT ROWID
"""

_UPSERT = "INSERT OR REPLACE INTO ledger(key, value) VALUES (?, ?)"
_REMOVE = "DELETE FROM ledger WHERE key = ?"

MEMORY = ":memory:"


def _upper_bound(prefix: bytes) -> Optional[bytes]:
    """First byte string after every key starting with `prefix`; None if unbounded."""
    trimmed = prefix.rstrip(b"\xff")
    if not trimmed:
        return None
    return trimmed[:-1] + bytes([trimmed[-1] + 1])


class _LedgerTxn(Batch):
    """Write transaction on the store's connection; commits on clean exit."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._live = False

    def __enter__(self) -> "_LedgerTxn":
        if self._live:
            raise RuntimeError("ledger transaction already open")
        self._conn.execute("BEGIN IMMEDIATE")
        self._live = True
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return None

    def _require_live(self) -> None:
        if not self._live:
            raise RuntimeError("ledger transaction is not open")

    def put(self, key: bytes, value: bytes) -> None:
        self._require_live()
        self._conn.execute(_UPSERT, (bytes(key), bytes(value)))

    def delete(self, key: bytes) -> None:
        self._require_live()
        self._conn.execute(_REMOVE, (bytes(key),))

    def commit(self) -> None:
        if self._live:
            self._live = False
            self._conn.execute("COMMIT")

    def rollback(self) -> None:
        if self._live:
            self._live = False
            self._conn.execute("ROLLBACK")


class SQLiteKV(KV):
    """Ledger store over an open connection; build one with `open_sqlite_kv`."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _one(self, sql: str, key: bytes) -> Optional[tuple]:
        return self._conn.execute(sql, (bytes(key),)).fetchone()

    def get(self, key: bytes) -> Optional[bytes]:
        row = self._one("SELECT value FROM ledger WHERE key = ?", key)
        return None if row is None else bytes(row[0])

    def has(self, key: bytes) -> bool:
        return self._one("SELECT 1 FROM ledger WHERE key = ?", key) is not None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """Entries whose key starts with `prefix`, ascending by key."""
        prefix = bytes(prefix)
        hi = _upper_bound(prefix)
        if hi is None:
            rows = self._conn.execute(
                "SELECT key, value FROM ledger WHERE key >= ? ORDER BY key", (prefix,)
            )
        else:
            rows = self._conn.execute(
                "SELECT key, value FROM ledger WHERE key >= ? AND key < ? ORDER BY key",
                (prefix, hi),
            )
        # Materialized so callers may write while iterating.
        found: List[Tuple[bytes, bytes]] = [(bytes(k), bytes(v)) for k, v in rows]
        return iter(found)

    def put(self, key: bytes, value: bytes) -> None:
        self._conn.execute(_UPSERT, (bytes(key), bytes(value)))

    def delete(self, key: bytes) -> None:
        self._conn.execute(_REMOVE, (bytes(key),))

    def batch(self) -> Batch:
        return _LedgerTxn(self._conn)

    def close(self) -> None:
        self._conn.close()


def open_sqlite_kv(path: Union[str, "os.PathLike[str]"] = MEMORY, *, create: bool = True) -> SQLiteKV:
    """
    Open the ledger store at `path` (``":memory:"`` for a private store).

    Raises FileNotFoundError when `create` is False and the file is missing.
    """
    target = os.fspath(path)
    if target != MEMORY and not create and not os.path.exists(target):
        raise FileNotFoundError(f"ledger store not found at {target}")
    conn = sqlite3.connect(target, isolation_level=None, check_same_thread=False)
    if target != MEMORY:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute(_SCHEMA)
    return SQLiteKV(conn)


__all__ = ["SQLiteKV", "open_sqlite_kv"]
