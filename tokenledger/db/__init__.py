from __future__ import annotations

"""
tokenledger.db
==============

Thin facade over the key–value backends the ledgers persist to.

URIs
----
- "sqlite:///path/to/ledger.db"   → SQLite file
- "sqlite:///:memory:"            → in-memory SQLite
- "memory://"                     → alias of "sqlite:///:memory:"
- bare path ending in ".db"       → SQLite file

API
---
- open_kv(uri: Optional[str] = None, create: bool = True) -> KV
  (no uri: use `Settings.db_uri`, i.e. TOKENLEDGER_DB_URI)

The typed KV interface and the composite-key codec live in tokenledger.db.kv.

Example
-------
>>> from tokenledger.db import open_kv
>>> kv = open_kv("memory://")
>>> with kv.batch() as b:
...     b.put(b"ft:key", b"hello")
>>> kv.get(b"ft:key")
b'hello'
"""

from typing import Optional, Tuple

from ..config import get_settings
from . import sqlite as _sqlite_backend
from .kv import (FUNGIBLE, KV, MULTI, NONFUNGIBLE, Batch, Prefix, ReadOnlyKV,
                 be_u256, from_be)


def _parse_uri(uri: str) -> Tuple[str, str]:
    """
    Parse a DB URI into (backend, path_or_spec).

    Returns:
        ("sqlite", path) or ("memory", "")
    """
    u = uri.strip()
    if u.startswith("sqlite:///"):
        return ("sqlite", u[len("sqlite:///") :])
    if u.startswith("memory://"):
        return ("memory", "")
    if u.endswith(".db"):
        return ("sqlite", u)
    raise ValueError(f"Unsupported DB URI: {uri!r}")


def open_kv(uri: Optional[str] = None, create: bool = True) -> KV:
    """
    Open a KV database by URI. See module docstring for supported forms.
    Without `uri` the configured `Settings.db_uri` is opened.

    Raises:
        ValueError for unsupported URIs.
        FileNotFoundError when `create=False` and the file is missing.
    """
    if uri is None:
        uri = get_settings().db_uri
    backend, spec = _parse_uri(uri)
    if backend == "memory":
        return _sqlite_backend.open_sqlite_kv(":memory:", create=True)
    return _sqlite_backend.open_sqlite_kv(spec or ":memory:", create=create)


__all__ = [
    # interfaces
    "KV",
    "ReadOnlyKV",
    "Batch",
    "Prefix",
    "FUNGIBLE",
    "NONFUNGIBLE",
    "MULTI",
    "be_u256",
    "from_be",
    # helpers
    "open_kv",
]
