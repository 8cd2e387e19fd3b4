"""
tokenledger.runtime.journal - buffered writes with read-set tracking.

A `Journal` is the per-operation view of the store. Writes and deletes go to
an in-memory overlay; reads consult the overlay first and then the base KV.
Every value fetched from the base is remembered together with the bytes that
were observed, and every prefix scan remembers the base snapshot it merged.

At commit time the host re-reads exactly those keys and prefixes inside the
store's write transaction (`validate`) and only then applies the overlay
(`apply`). If anything the operation depended on changed in between, the
commit fails with `StateConflict` and the overlay is dropped.

Key properties
--------------
- Pure Python, no I/O of its own; all base access goes through `ReadOnlyKV`.
- Deletion markers (`None`) in the overlay shadow base values, including in
  prefix scans.
- Repeatable reads: a key is fetched from the base at most once per journal.
- Deterministic: `apply` writes keys in ascending byte order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from ..db.kv import Batch, ReadOnlyKV
from ..errors import StateConflict

# =============================================================================
# Overlay model
# =============================================================================


@dataclass
class _Overlay:
    """
    Staged changes of one unit of work.

    - `writes`: key → value; `None` marks a deletion.
    - `reads`: key → value observed in the base (None = absent).
    - `scans`: prefix → base snapshot of (key, value) pairs in key order.
    """

    writes: Dict[bytes, Optional[bytes]] = field(default_factory=dict)
    reads: Dict[bytes, Optional[bytes]] = field(default_factory=dict)
    scans: Dict[bytes, List[Tuple[bytes, bytes]]] = field(default_factory=dict)


# =============================================================================
# Journal
# =============================================================================


class Journal:
    """
    Overlay over a base KV.

    API highlights
    --------------
    - get(), has(), iter_prefix() - overlay-first reads
    - put(), delete() - buffered writes
    - validate(kv), apply(batch) - commit protocol driven by the host
    - discard() - drop every staged change
    """

    def __init__(self, base: ReadOnlyKV) -> None:
        self._base = base
        self._o = _Overlay()

    # --------------------------------------------------------------------- #
    # Reads
    # --------------------------------------------------------------------- #

    def _base_get(self, key: bytes) -> Optional[bytes]:
        if key in self._o.reads:
            return self._o.reads[key]
        v = self._base.get(key)
        self._o.reads[key] = v
        return v

    def get(self, key: bytes) -> Optional[bytes]:
        if key in self._o.writes:
            return self._o.writes[key]
        return self._base_get(key)

    def has(self, key: bytes) -> bool:
        return self.get(key) is not None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """
        Yield (key, value) pairs under `prefix` in key order, with staged
        writes taking precedence over the base snapshot. The merged view is
        materialized up front, so callers may write while iterating.
        """
        snap = self._o.scans.get(prefix)
        if snap is None:
            snap = list(self._base.iter_prefix(prefix))
            self._o.scans[prefix] = snap
        merged: Dict[bytes, Optional[bytes]] = dict(snap)
        for k, v in self._o.writes.items():
            if k.startswith(prefix):
                merged[k] = v
        items = [(k, v) for k, v in sorted(merged.items()) if v is not None]
        return iter(items)

    # --------------------------------------------------------------------- #
    # Writes
    # --------------------------------------------------------------------- #

    def put(self, key: bytes, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError("value must be bytes")
        self._o.writes[bytes(key)] = bytes(value)

    def delete(self, key: bytes) -> None:
        self._o.writes[bytes(key)] = None

    # --------------------------------------------------------------------- #
    # Commit protocol
    # --------------------------------------------------------------------- #

    @property
    def dirty(self) -> bool:
        return bool(self._o.writes)

    def validate(self, kv: ReadOnlyKV) -> None:
        """
        Re-read everything this journal observed and raise `StateConflict`
        if any of it changed. Call inside the store's write transaction.
        """
        for k, seen in self._o.reads.items():
            if kv.get(k) != seen:
                raise StateConflict("key changed during operation", key=k)
        for p, snap in self._o.scans.items():
            if list(kv.iter_prefix(p)) != snap:
                raise StateConflict("prefix changed during operation", prefix=p)

    def apply(self, batch: Batch) -> int:
        """Write staged changes into `batch`. Returns the number of keys touched."""
        for k in sorted(self._o.writes):
            v = self._o.writes[k]
            if v is None:
                batch.delete(k)
            else:
                batch.put(k, v)
        return len(self._o.writes)

    def discard(self) -> None:
        self._o = _Overlay()


__all__ = ["Journal"]
