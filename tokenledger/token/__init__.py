"""
tokenledger.token
=================

Shared building blocks for the three token variants:

- `TokenBase`: wires a variant to its `Host`, namespace, arithmetic width and
  authorization gate, and provides the common surface every variant exposes
  (`initialize`, `name`, `symbol`, `decimals`, `client_account_id`).
- Amount storage helpers: amounts are stored as 32-byte big-endian values and
  entries that reach zero are deleted rather than stored as zero.
- Account validators shared by the variants.

Every public method opens exactly one unit of work via `TokenBase._op`, which
also enforces `require_initialized` for everything except `initialize`.
"""

from __future__ import annotations

import contextlib
from typing import Any, ClassVar, Iterator, Optional

from ..access.gate import Gate
from ..db.kv import Prefix, be_u256, from_be
from ..errors import InvalidAddress, InvalidArgument, SelfOperation
from ..math.safe_uint import SafeUint
from ..runtime.host import Host, UnitOfWork

# -----------------------------------------------------------------------------
# Validators
# -----------------------------------------------------------------------------


def require_account(account: Any, zero: Optional[str] = None, *, what: str = "account") -> str:
    """
    Ensure `account` is a non-empty string. When `zero` is given the
    zero-address sentinel is rejected as well.
    """
    if not isinstance(account, str) or not account:
        raise InvalidAddress(account if isinstance(account, str) else None, f"{what} must be a non-empty string")
    if zero is not None and account == zero:
        raise InvalidAddress(account, f"{what} cannot be the zero address")
    return account


def require_distinct(src: str, dst: str) -> None:
    if src == dst:
        raise SelfOperation(src, "cannot transfer to and from same client account")


def require_flag(value: Any, what: str = "approved") -> bool:
    if not isinstance(value, bool):
        raise InvalidArgument(f"{what} must be a boolean", **{what: value})
    return value


# -----------------------------------------------------------------------------
# Amount storage helpers
# -----------------------------------------------------------------------------


def read_amount(u: UnitOfWork, key: bytes) -> int:
    """Stored amount at `key`, 0 when absent."""
    v = u.get(key)
    return from_be(v) if v is not None else 0


def write_amount(u: UnitOfWork, key: bytes, n: int) -> None:
    """Store `n` at `key`; zero deletes the entry."""
    if n == 0:
        u.delete(key)
    else:
        u.put(key, be_u256(n))


# -----------------------------------------------------------------------------
# Base class
# -----------------------------------------------------------------------------


class TokenBase:
    """
    Common wiring for a token variant.

    Parameters
    ----------
    host : Host
        Store, identity and event sink shared with other variants.
    ns : Prefix, optional
        Namespace override; defaults to the variant's `NAMESPACE`.
    """

    NAMESPACE: ClassVar[Prefix]
    VARIANT: ClassVar[str] = "token"

    def __init__(self, host: Host, ns: Optional[Prefix] = None) -> None:
        self.host = host
        self.settings = host.settings
        self.ns = ns or self.NAMESPACE
        self.math = SafeUint(self.settings.amount_bits)
        self.gate = Gate(self.ns, self.settings.issuer)
        self.zero = self.settings.zero_address

    @contextlib.contextmanager
    def _op(self, name: str, *, initialized: bool = True) -> Iterator[UnitOfWork]:
        with self.host.unit(f"{self.VARIANT}.{name}") as u:
            if initialized:
                self.gate.require_initialized(u)
            yield u

    # ------------------------------------------------------------------ #
    # Metadata & identity
    # ------------------------------------------------------------------ #

    def initialize(self, name: str, symbol: str, decimals: Optional[int] = None) -> bool:
        with self._op("initialize", initialized=False) as u:
            self.gate.initialize(u, name, symbol, decimals)
        return True

    def is_initialized(self) -> bool:
        with self._op("is_initialized", initialized=False) as u:
            return self.gate.is_initialized(u)

    def name(self) -> str:
        with self._op("name") as u:
            return self.gate.name(u)

    def symbol(self) -> str:
        with self._op("symbol") as u:
            return self.gate.symbol(u)

    def decimals(self) -> int:
        with self._op("decimals") as u:
            return self.gate.decimals(u)

    def client_account_id(self) -> str:
        with self._op("client_account_id") as u:
            return u.caller


__all__ = [
    "TokenBase",
    "require_account",
    "require_distinct",
    "require_flag",
    "read_amount",
    "write_amount",
]
