from __future__ import annotations

"""
KV interface & composite keys
=============================

Backend-agnostic Key–Value interface consumed by the ledgers, plus the
composite-key codec every ledger entry is addressed by.

Each token variant owns one namespace prefix so that all three can share a
single store:

- FUNGIBLE     (b"ft:")  : balances, allowances, total supply, metadata
- NONFUNGIBLE  (b"nft:") : token records, owner index, operator approvals
- MULTI        (b"mt:")  : partitioned balances, operator approvals, URI

Backends (sqlite) implement this interface and the batch semantics.
This file is *pure interface + helpers* and contains no I/O.

Composite keys
--------------
    Prefix("mt").key("bal", "alice", 7, "bob")
      → b"mt:" + uvarint(3)|b"bal" + uvarint(5)|b"alice" + uvarint(1)|b"\\x07" + ...

Every part is length-prefixed, so parts may contain any byte (including the
separator) and `Prefix.split` recovers them exactly. A key built from parts
``p1..pk`` is a byte-prefix of every key built from ``p1..pk, ...``, which is
what prefix scans over (account, id) rely on.

Iterators
---------
`iter_prefix(prefix: bytes)` yields `(key, value)` pairs in lexicographic order.

Batching
--------
`KV.batch()` returns a context manager. Use it to atomically put/delete:

>>> with kv.batch() as b:
...     b.put(MULTI.key("bal", "a", 1, "a"), be_u256(5))
...     b.delete(MULTI.key("bal", "a", 1, "b"))
"""

from typing import (Iterator, List, Optional, Protocol, Tuple, Union,
                    runtime_checkable)

# ---------------------------------------------------------------------------
# Prefix helpers
# ---------------------------------------------------------------------------

NS_SEP = b":"  # separator used once after the namespace

KeyPart = Union[bytes, bytearray, memoryview, str, int]


class Prefix:
    """
    A logical namespace prefix (e.g., b"ft:").

    .raw gives the raw bytes prefix.
    .key(*parts) builds a composite key: prefix + ∑ (uvarlen | part_bytes).
    .split(key) reverses .key into its raw byte parts.
    """

    __slots__ = ("_raw",)

    def __init__(self, ns: Union[bytes, bytearray, memoryview, str]) -> None:
        if isinstance(ns, str):
            ns_b = ns.encode("ascii")
        else:
            ns_b = bytes(ns)
        if len(ns_b) == 0:
            raise ValueError("namespace must be non-empty")
        self._raw = ns_b.rstrip(NS_SEP) + NS_SEP

    @property
    def raw(self) -> bytes:
        return self._raw

    def key(self, *parts: KeyPart) -> bytes:
        """Build a composite key under this prefix."""
        out = bytearray(self._raw)
        for p in parts:
            pb = _part_to_bytes(p)
            out.extend(_uvarint_encode(len(pb)))
            out.extend(pb)
        return bytes(out)

    def split(self, key: bytes) -> List[bytes]:
        """
        Split a key produced by `key()` back into its raw parts.

        Raises ValueError if `key` does not live under this prefix or is
        truncated.
        """
        if not key.startswith(self._raw):
            raise ValueError("key does not belong to this namespace")
        parts: List[bytes] = []
        pos = len(self._raw)
        end = len(key)
        while pos < end:
            n, pos = _uvarint_decode(key, pos)
            if pos + n > end:
                raise ValueError("truncated key part")
            parts.append(bytes(key[pos : pos + n]))
            pos += n
        return parts

    def __repr__(self) -> str:
        return f"Prefix({self._raw!r})"


def _part_to_bytes(p: KeyPart) -> bytes:
    if isinstance(p, (bytes, bytearray, memoryview)):
        return bytes(p)
    if isinstance(p, bool):
        raise TypeError("bool is not a valid key part")
    if isinstance(p, str):
        return p.encode("utf-8")
    if isinstance(p, int):
        # Minimal big-endian, unsigned
        if p < 0:
            raise ValueError("negative ints not supported in key parts")
        return int_to_part(p)
    raise TypeError(f"unsupported key part type: {type(p)!r}")


def int_to_part(n: int) -> bytes:
    if n == 0:
        return b"\x00"
    return n.to_bytes((n.bit_length() + 7) // 8, "big")


def part_to_int(b: bytes) -> int:
    return int.from_bytes(b, "big")


def _uvarint_encode(n: int) -> bytes:
    """LEB128 unsigned length prefix."""
    if n < 0:
        raise ValueError("length must be non-negative")
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(0x80 | b)
        else:
            out.append(b)
            break
    return bytes(out)


def _uvarint_decode(buf: bytes, pos: int) -> Tuple[int, int]:
    shift = 0
    n = 0
    while True:
        if pos >= len(buf):
            raise ValueError("truncated length prefix")
        b = buf[pos]
        pos += 1
        n |= (b & 0x7F) << shift
        if not b & 0x80:
            return n, pos
        shift += 7


def be_u256(n: int) -> bytes:
    if not (0 <= n < (1 << 256)):
        raise ValueError("be_u256 out of range")
    return n.to_bytes(32, "big")


def from_be(b: bytes) -> int:
    return int.from_bytes(b, "big")


# Default namespaces, one per token variant
FUNGIBLE = Prefix(b"ft")
NONFUNGIBLE = Prefix(b"nft")
MULTI = Prefix(b"mt")


# ---------------------------------------------------------------------------
# KV protocols & Batch
# ---------------------------------------------------------------------------


@runtime_checkable
class ReadOnlyKV(Protocol):
    """Minimal read-only KV surface."""

    def get(self, key: bytes) -> Optional[bytes]:
        """Fetch value or None if missing."""
        ...

    def has(self, key: bytes) -> bool:
        """Return True if key exists."""
        ...

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """
        Iterate over (key, value) pairs whose key begins with `prefix`,
        in lexicographic byte-order of keys.
        """
        ...

    def close(self) -> None:
        """Close resources."""
        ...


@runtime_checkable
class Batch(Protocol):
    """
    A write-batch context manager. Backend guarantees atomicity when exiting
    the context without exception. If an exception escapes, the batch is rolled back.
    """

    def put(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...

    def __enter__(self) -> "Batch": ...
    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


@runtime_checkable
class KV(ReadOnlyKV, Protocol):
    """Full RW KV surface."""

    def put(self, key: bytes, value: bytes) -> None:
        """Persist (key,value). Overwrites if exists."""
        ...

    def delete(self, key: bytes) -> None:
        """Remove key if present (idempotent)."""
        ...

    def batch(self) -> Batch:
        """Return a new write batch."""
        ...


__all__ = [
    # Protocols
    "ReadOnlyKV",
    "KV",
    "Batch",
    # Prefixes
    "Prefix",
    "KeyPart",
    "FUNGIBLE",
    "NONFUNGIBLE",
    "MULTI",
    # Encoders
    "int_to_part",
    "part_to_int",
    "be_u256",
    "from_be",
]
