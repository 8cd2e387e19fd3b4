"""
tokenledger.access.gate
=======================

Identity & authorization gate plus the contract metadata it guards.

This module owns one small piece of state per token namespace, the contract
metadata, and the checks every public operation passes through:

- `require_initialized` - metadata exists (the name entry is the flag)
- `require_issuer`      - the caller's issuer equals the configured issuer
- `initialize`          - issuer-gated, one-time creation of the metadata
- `name` / `symbol` / `decimals` - metadata reads

Storage layout (under the variant's namespace)
----------------------------------------------
    key("meta", "name")      → UTF-8 name
    key("meta", "symbol")    → UTF-8 symbol
    key("meta", "decimals")  → 32-byte big-endian (absent when not given)

Metadata is immutable once written; nothing in the package updates or deletes
these keys after `initialize`.
"""

from __future__ import annotations

from typing import Any, Final, Optional

from ..db.kv import Prefix, be_u256, from_be
from ..errors import (AlreadyExists, InvalidArgument, NotFound,
                      NotInitialized, Unauthorized)
from ..runtime.events import EV_INITIALIZED, InitializedPayload
from ..runtime.host import UnitOfWork

MAX_DECIMALS: Final[int] = 255


def require_text(value: Any, what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{what} must be a non-empty string", **{what: value})
    return value


def require_decimals(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not (0 <= value <= MAX_DECIMALS):
        raise InvalidArgument(f"decimals must be an integer in 0..{MAX_DECIMALS}", decimals=value)
    return value


class Gate:
    """
    Authorization checks and metadata for one token namespace.

    Parameters
    ----------
    ns : Prefix
        Namespace of the token variant this gate guards.
    issuer : str
        The only caller issuer allowed to run privileged operations.
    """

    def __init__(self, ns: Prefix, issuer: str) -> None:
        self.ns = ns
        self.issuer = issuer
        self.k_name = ns.key("meta", "name")
        self.k_symbol = ns.key("meta", "symbol")
        self.k_decimals = ns.key("meta", "decimals")

    # ------------------------------------------------------------------ #
    # Checks
    # ------------------------------------------------------------------ #

    def is_initialized(self, u: UnitOfWork) -> bool:
        return u.has(self.k_name)

    def require_initialized(self, u: UnitOfWork) -> None:
        if not self.is_initialized(u):
            raise NotInitialized()

    def require_issuer(self, u: UnitOfWork) -> None:
        issuer = u.issuer
        if issuer != self.issuer:
            raise Unauthorized(
                "client is not authorized to perform this operation",
                caller=u.caller,
                issuer=issuer,
            )

    # ------------------------------------------------------------------ #
    # Metadata
    # ------------------------------------------------------------------ #

    def initialize(
        self, u: UnitOfWork, name: str, symbol: str, decimals: Optional[int] = None
    ) -> None:
        self.require_issuer(u)
        if self.is_initialized(u):
            raise AlreadyExists("contract options", key="meta")
        require_text(name, "name")
        require_text(symbol, "symbol")
        require_decimals(decimals)

        u.put(self.k_name, name.encode("utf-8"))
        u.put(self.k_symbol, symbol.encode("utf-8"))
        if decimals is not None:
            u.put(self.k_decimals, be_u256(decimals))
        u.emit(EV_INITIALIZED, InitializedPayload(name=name, symbol=symbol, decimals=decimals))

    def name(self, u: UnitOfWork) -> str:
        self.require_initialized(u)
        return (u.get(self.k_name) or b"").decode("utf-8")

    def symbol(self, u: UnitOfWork) -> str:
        self.require_initialized(u)
        return (u.get(self.k_symbol) or b"").decode("utf-8")

    def decimals(self, u: UnitOfWork) -> int:
        self.require_initialized(u)
        raw = u.get(self.k_decimals)
        if raw is None:
            raise NotFound("decimals")
        return from_be(raw)


__all__ = ["Gate", "MAX_DECIMALS", "require_text", "require_decimals"]
