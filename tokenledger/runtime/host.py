"""
tokenledger.runtime.host - collaborators and the unit of work.

The ledgers never talk to a store, an identity service or an event bus
directly. They receive a `Host` bundling three narrow collaborators:

- a `KV` store (see tokenledger.db),
- an `Identity` resolving the caller id and issuer,
- an `EventSink` receiving committed events.

Every public ledger operation runs inside ``host.unit(op)``:

    with host.unit("ft.transfer") as u:
        caller = u.caller
        raw = u.get(key)
        u.put(key, value)
        u.emit(EV_TRANSFER, TransferPayload(...))

On normal exit the journal's read set is validated and its writes are applied
inside one `KV.batch()`; buffered events are then delivered in emission order.
On any exception nothing is written and no event is delivered. A unit opened
while another is active on the same host joins the outer one.
"""

from __future__ import annotations

import contextlib
from typing import Iterator, List, Optional, Protocol, Tuple, runtime_checkable

from ..config import Settings, get_settings
from ..db import open_kv
from ..db.kv import KV
from ..errors import IdentityUnavailable, TokenError
from ..logging import bind_context, clear_context, get_logger
from .events import Event, EventSink, NullEventSink, _Payload
from .journal import Journal

log = get_logger(__name__)


# =============================================================================
# Identity
# =============================================================================


@runtime_checkable
class Identity(Protocol):
    def caller_id(self) -> str: ...
    def caller_issuer(self) -> str: ...


class StaticIdentity:
    """
    Identity with a fixed, switchable caller. Used by tests and by embedders
    that resolve identity before calling into the ledger.

        ident = StaticIdentity("alice", "mailabs")
        with ident.acting_as("bob", "org2"):
            ...
    """

    def __init__(self, caller: str, issuer: str = "") -> None:
        self.caller = caller
        self.issuer = issuer

    def caller_id(self) -> str:
        return self.caller

    def caller_issuer(self) -> str:
        return self.issuer

    def set(self, caller: str, issuer: Optional[str] = None) -> None:
        self.caller = caller
        if issuer is not None:
            self.issuer = issuer

    @contextlib.contextmanager
    def acting_as(self, caller: str, issuer: Optional[str] = None) -> Iterator["StaticIdentity"]:
        prev = (self.caller, self.issuer)
        self.set(caller, issuer)
        try:
            yield self
        finally:
            self.caller, self.issuer = prev


# =============================================================================
# Unit of work
# =============================================================================


class UnitOfWork:
    """
    The view one operation has of the world: overlay reads/writes, the
    resolved caller, and the events it will emit on success.
    """

    def __init__(self, host: "Host", op: str) -> None:
        self.host = host
        self.op = op
        self.journal = Journal(host.kv)
        self._events: List[Event] = []
        self._caller: Optional[str] = None
        self._issuer: Optional[str] = None

    # --- identity ---

    @property
    def caller(self) -> str:
        if self._caller is None:
            cid = self.host.identity.caller_id()
            if not cid:
                raise IdentityUnavailable("caller id")
            self._caller = cid
            bind_context(caller=cid)
        return self._caller

    @property
    def issuer(self) -> str:
        if self._issuer is None:
            iss = self.host.identity.caller_issuer()
            if not iss:
                raise IdentityUnavailable("caller issuer")
            self._issuer = iss
        return self._issuer

    # --- state ---

    def get(self, key: bytes) -> Optional[bytes]:
        return self.journal.get(key)

    def has(self, key: bytes) -> bool:
        return self.journal.has(key)

    def scan(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        return self.journal.iter_prefix(prefix)

    def put(self, key: bytes, value: bytes) -> None:
        self.journal.put(key, value)

    def delete(self, key: bytes) -> None:
        self.journal.delete(key)

    # --- events ---

    def emit(self, name: str, payload: _Payload) -> None:
        self._events.append(Event(name, payload))

    @property
    def events(self) -> List[Event]:
        return list(self._events)


# =============================================================================
# Host
# =============================================================================


class Host:
    """
    Bundle of collaborators shared by every ledger built on it.

    Parameters
    ----------
    kv : KV
        Backing store.
    identity : Identity
        Caller resolution.
    sink : EventSink, optional
        Receiver of committed events (default: NullEventSink).
    settings : Settings, optional
        Ledger rules; defaults to `get_settings()`.
    """

    def __init__(
        self,
        kv: KV,
        identity: Identity,
        sink: Optional[EventSink] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.kv = kv
        self.identity = identity
        self.sink: EventSink = sink if sink is not None else NullEventSink()
        self.settings = settings or get_settings()
        self._active: Optional[UnitOfWork] = None

    @classmethod
    def from_settings(
        cls,
        identity: Identity,
        sink: Optional[EventSink] = None,
        settings: Optional[Settings] = None,
    ) -> "Host":
        """Host over the store named by `settings.db_uri` (TOKENLEDGER_DB_URI)."""
        settings = settings or get_settings()
        return cls(open_kv(settings.db_uri), identity, sink, settings)

    @contextlib.contextmanager
    def unit(self, op: str) -> Iterator[UnitOfWork]:
        if self._active is not None:
            yield self._active
            return

        u = UnitOfWork(self, op)
        self._active = u
        bind_context(op=op)
        try:
            try:
                yield u
            except TokenError as e:
                log.info("op_rejected", error=e.to_dict())
                raise
            finally:
                self._active = None
            self._commit(u)
        finally:
            u.journal.discard()
            clear_context("op", "caller")

    def _commit(self, u: UnitOfWork) -> None:
        if u.journal.dirty:
            try:
                with self.kv.batch() as b:
                    u.journal.validate(self.kv)
                    touched = u.journal.apply(b)
            except TokenError as e:
                log.warning("op_conflict", error=e.to_dict())
                raise
        else:
            touched = 0
        for ev in u.events:
            self.sink.emit(ev.name, ev.encode())
        log.debug("op_committed", writes=touched, events=len(u.events))


__all__ = ["Identity", "StaticIdentity", "UnitOfWork", "Host"]
