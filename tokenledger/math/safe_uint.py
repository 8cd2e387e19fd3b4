"""
tokenledger.math.safe_uint
==========================

Checked unsigned-integer arithmetic for ledger amounts.

Goals
-----
- Amounts live in ``[0, 2**bits - 1]``; nothing ever goes negative and
  nothing ever wraps.
- Exactly two mutating primitives, `add` and `sub`; every balance, supply
  and allowance change in the ledgers routes through them.
- Integer-only; no floats anywhere.

Conventions
-----------
- Overflow raises `ArithmeticOverflow`.
- Subtracting more than is there raises `InsufficientFunds`.
- Out-of-range or non-int operands raise `InvalidAmount`.
- `SafeUint(bits)` binds the width; `checked_add`/`checked_sub` use the
  configured default width.
"""

from __future__ import annotations

from typing import Any, Final, Optional

from ..config import get_settings
from ..errors import ArithmeticOverflow, InsufficientFunds, InvalidAmount

MAX_BITS: Final[int] = 256


class SafeUint:
    """Fixed-width unsigned arithmetic with explicit failures."""

    __slots__ = ("bits", "max")

    def __init__(self, bits: int) -> None:
        if not isinstance(bits, int) or not (1 <= bits <= MAX_BITS):
            raise ValueError(f"bits must be in 1..{MAX_BITS}")
        self.bits = bits
        self.max = (1 << bits) - 1

    def require(self, x: Any) -> int:
        """Return `x` if it is an in-range amount, else raise InvalidAmount."""
        if isinstance(x, bool) or not isinstance(x, int):
            raise InvalidAmount(x, "amount must be an integer")
        if x < 0 or x > self.max:
            raise InvalidAmount(x)
        return x

    def require_positive(self, x: Any) -> int:
        self.require(x)
        if x == 0:
            raise InvalidAmount(x, "amount must be positive")
        return x

    def add(self, a: int, b: int) -> int:
        self.require(a)
        self.require(b)
        s = a + b
        if s > self.max:
            raise ArithmeticOverflow(a, b, self.max)
        return s

    def sub(self, a: int, b: int, token_id: Any = None) -> int:
        self.require(a)
        self.require(b)
        if b > a:
            raise InsufficientFunds(needed=b, available=a, token_id=token_id)
        return a - b

    def __repr__(self) -> str:
        return f"SafeUint(bits={self.bits})"


def default(bits: Optional[int] = None) -> SafeUint:
    return SafeUint(bits if bits is not None else get_settings().amount_bits)


def checked_add(a: int, b: int) -> int:
    """a + b, or ArithmeticOverflow past the configured width."""
    return default().add(a, b)


def checked_sub(a: int, b: int) -> int:
    """a - b, or InsufficientFunds when b > a."""
    return default().sub(a, b)


__all__ = ["MAX_BITS", "SafeUint", "default", "checked_add", "checked_sub"]
