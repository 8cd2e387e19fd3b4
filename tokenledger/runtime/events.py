"""
tokenledger.runtime.events - typed event payloads and pluggable sinks.

Every successful mutating ledger operation emits exactly one event. Events are
immutable audit records: they are buffered inside the unit of work and handed
to the sink only after the store commit succeeded, and they are never read
back as ledger state.

Payloads are frozen pydantic models serialized to JSON bytes with their wire
field names (``from``, ``tokenId`` …):

    Transfer        {from, to, value}                       fungible
    Transfer        {from, to, tokenId}                     non-fungible
    Approval        {owner, spender, value}                 fungible
    Approval        {owner, approved, tokenId}              non-fungible
    ApprovalForAll  {owner, operator, approved}             NFT / multi-token
    TransferSingle  {operator, from, to, id, value}         multi-token
    TransferBatch   {operator, from, to, ids, values}       multi-token
    URI             {value}                                 multi-token
    Initialized     {name, symbol, decimals}                all variants

Sinks
-----
- InMemoryEventSink: keeps every (name, payload) pair; test/dev friendly.
- NullEventSink: discards everything.
Any object with ``emit(name: str, payload: bytes)`` satisfies `EventSink`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import (Any, Dict, List, Optional, Protocol, Tuple,
                    runtime_checkable)

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Event names
# =============================================================================

EV_TRANSFER = "Transfer"
EV_APPROVAL = "Approval"
EV_APPROVAL_FOR_ALL = "ApprovalForAll"
EV_TRANSFER_SINGLE = "TransferSingle"
EV_TRANSFER_BATCH = "TransferBatch"
EV_URI = "URI"
EV_INITIALIZED = "Initialized"


# =============================================================================
# Payload models
# =============================================================================


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def encode(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")


class TransferPayload(_Payload):
    from_: str = Field(alias="from")
    to: str
    value: int


class NftTransferPayload(_Payload):
    from_: str = Field(alias="from")
    to: str
    token_id: str = Field(alias="tokenId")


class ApprovalPayload(_Payload):
    owner: str
    spender: str
    value: int


class NftApprovalPayload(_Payload):
    owner: str
    approved: str
    token_id: str = Field(alias="tokenId")


class ApprovalForAllPayload(_Payload):
    owner: str
    operator: str
    approved: bool


class TransferSinglePayload(_Payload):
    operator: str
    from_: str = Field(alias="from")
    to: str
    id: int
    value: int


class TransferBatchPayload(_Payload):
    operator: str
    from_: str = Field(alias="from")
    to: str
    ids: Tuple[int, ...]
    values: Tuple[int, ...]


class UriPayload(_Payload):
    value: str


class InitializedPayload(_Payload):
    name: str
    symbol: str
    decimals: Optional[int] = None


# =============================================================================
# Buffered event
# =============================================================================


@dataclass(frozen=True)
class Event:
    """A named payload waiting for (or already past) delivery."""

    name: str
    payload: _Payload

    def encode(self) -> bytes:
        return self.payload.encode()


# =============================================================================
# Sink interface
# =============================================================================


@runtime_checkable
class EventSink(Protocol):
    def emit(self, name: str, payload: bytes) -> None:
        """Deliver one committed event."""


class InMemoryEventSink:
    """Keeps every delivered event in RAM, in delivery order."""

    def __init__(self) -> None:
        self._events: List[Tuple[str, bytes]] = []

    def emit(self, name: str, payload: bytes) -> None:
        self._events.append((name, bytes(payload)))

    @property
    def events(self) -> List[Tuple[str, bytes]]:
        return list(self._events)

    def names(self) -> List[str]:
        return [n for n, _ in self._events]

    def decoded(self, name: Optional[str] = None) -> List[Dict[str, Any]]:
        """JSON-decoded payloads, optionally filtered by event name."""
        return [json.loads(p) for n, p in self._events if name is None or n == name]

    def last(self) -> Tuple[str, Dict[str, Any]]:
        if not self._events:
            raise LookupError("no events delivered")
        n, p = self._events[-1]
        return n, json.loads(p)

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


class NullEventSink:
    """Discards every event."""

    def emit(self, name: str, payload: bytes) -> None:
        return None


__all__ = [
    "EV_TRANSFER",
    "EV_APPROVAL",
    "EV_APPROVAL_FOR_ALL",
    "EV_TRANSFER_SINGLE",
    "EV_TRANSFER_BATCH",
    "EV_URI",
    "EV_INITIALIZED",
    "TransferPayload",
    "NftTransferPayload",
    "ApprovalPayload",
    "NftApprovalPayload",
    "ApprovalForAllPayload",
    "TransferSinglePayload",
    "TransferBatchPayload",
    "UriPayload",
    "InitializedPayload",
    "Event",
    "EventSink",
    "InMemoryEventSink",
    "NullEventSink",
]
