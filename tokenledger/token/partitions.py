"""
Partitioned multi-token ledger
==============================

Balances of a multi-token id are not a single counter. Every credit is
recorded under the identity that performed it, the *creditor origin*:

    key("balance", account, id, origin) → 32-byte amount

``origin == account`` is the account's own ("self") partition; any other
origin is a sender that transferred units in, or the issuer that minted
them. balanceOf(account, id) is the sum over all origins. Zero-amount
entries never exist.

Debit
-----
`debit(account, id, needed)` satisfies a demand by consuming partitions:

1. Foreign partitions (origin != account) are folded in ascending key order
   and deleted as they are folded.
2. The self partition is folded **last**, wherever it happens to sort, and
   only if the foreign partitions did not cover the demand.
3. Folding stops as soon as the demand is met.
4. If all partitions together fall short the debit fails with
   `InsufficientFunds(needed, available, id)`; the surrounding unit of work
   discards the deletes already staged.
5. Whatever the last folded partition had beyond the demand stays with the
   account: if the self partition was folded it is overwritten with the
   remainder (or deleted when the remainder is zero); otherwise the
   remainder is credited into the self partition.

So the number of entries per (account, id) is bounded by the number of
distinct depositors, not by the number of debits.

Batches
-------
`credit_batch` / `debit_batch` first coalesce duplicate ids by summing
their amounts, then apply the single-id operation per distinct id in
ascending numeric id order. The coalesced (ids, amounts) are returned so the
caller can emit one batch event.

This module performs no authorization and no account validation; callers one
layer up (`tokenledger.token.multi`) do that.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

from ..db.kv import Prefix, from_be
from ..errors import InsufficientFunds, InvalidArgument, LengthMismatch
from ..math.safe_uint import SafeUint
from ..runtime.host import UnitOfWork
from . import read_amount, write_amount


def require_id(token_id: Any) -> int:
    if isinstance(token_id, bool) or not isinstance(token_id, int) or token_id < 0:
        raise InvalidArgument("token id must be a non-negative integer", id=token_id)
    return token_id


def coalesce(math: SafeUint, ids: Sequence[int], amounts: Sequence[int]) -> List[Tuple[int, int]]:
    """
    Merge duplicate ids (summing amounts with overflow checks) and return
    (id, amount) pairs in ascending id order.
    """
    if len(ids) != len(amounts):
        raise LengthMismatch(len(ids), len(amounts))
    merged: Dict[int, int] = {}
    for token_id, amount in zip(ids, amounts):
        require_id(token_id)
        math.require(amount)
        merged[token_id] = math.add(merged.get(token_id, 0), amount)
    return sorted(merged.items())


class PartitionLedger:
    """
    Provenance-partitioned balances for one multi-token namespace.

    Parameters
    ----------
    ns : Prefix
        Namespace the entries live under.
    math : SafeUint
        Amount width; every fold, credit and remainder goes through it.
    """

    def __init__(self, ns: Prefix, math: SafeUint) -> None:
        self.ns = ns
        self.math = math

    def key_entry(self, account: str, token_id: int, origin: str) -> bytes:
        return self.ns.key("balance", account, token_id, origin)

    def key_holding(self, account: str, token_id: int) -> bytes:
        return self.ns.key("balance", account, token_id)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def entries(self, u: UnitOfWork, account: str, token_id: int) -> Dict[str, int]:
        """origin → amount for every partition of (account, id)."""
        out: Dict[str, int] = {}
        for k, v in u.scan(self.key_holding(account, token_id)):
            origin = self.ns.split(k)[3].decode("utf-8")
            out[origin] = from_be(v)
        return out

    def balance_of(self, u: UnitOfWork, account: str, token_id: int) -> int:
        total = 0
        for _, v in u.scan(self.key_holding(account, token_id)):
            total = self.math.add(total, from_be(v))
        return total

    # ------------------------------------------------------------------ #
    # Single-id mutations
    # ------------------------------------------------------------------ #

    def credit(self, u: UnitOfWork, account: str, token_id: int, amount: int, origin: str) -> int:
        """
        Add `amount` to the (account, id, origin) partition; returns its new value.

        The holding as a whole (sum over origins) must stay representable,
        otherwise `ArithmeticOverflow` is raised and nothing is written.
        """
        self.math.add(self.balance_of(u, account, token_id), amount)
        key = self.key_entry(account, token_id, origin)
        updated = self.math.add(read_amount(u, key), amount)
        write_amount(u, key, updated)
        return updated

    def debit(self, u: UnitOfWork, account: str, token_id: int, needed: int) -> None:
        self.math.require(needed)
        self_key = self.key_entry(account, token_id, account)
        self_amount = None
        foreign: List[Tuple[bytes, int]] = []
        for k, v in u.scan(self.key_holding(account, token_id)):
            if k == self_key:
                self_amount = from_be(v)
            else:
                foreign.append((k, from_be(v)))

        remaining = needed
        remainder = 0
        for k, amount in foreign:
            if remaining == 0:
                break
            u.delete(k)
            remaining, remainder = self._fold(remaining, amount)

        self_folded = False
        if remaining > 0 and self_amount is not None:
            self_folded = True
            remaining, remainder = self._fold(remaining, self_amount)

        if remaining > 0:
            raise InsufficientFunds(
                needed=needed,
                available=self.math.sub(needed, remaining),
                token_id=token_id,
            )

        if self_folded:
            write_amount(u, self_key, remainder)
        elif remainder > 0:
            self.credit(u, account, token_id, remainder, account)

    def _fold(self, remaining: int, amount: int) -> Tuple[int, int]:
        """Consume `amount` against `remaining`; returns (still needed, left over)."""
        if amount >= remaining:
            return 0, self.math.sub(amount, remaining)
        return self.math.sub(remaining, amount), 0

    # ------------------------------------------------------------------ #
    # Batches
    # ------------------------------------------------------------------ #

    def credit_batch(
        self, u: UnitOfWork, account: str, ids: Sequence[int], amounts: Sequence[int], origin: str
    ) -> List[Tuple[int, int]]:
        pairs = coalesce(self.math, ids, amounts)
        for token_id, amount in pairs:
            self.credit(u, account, token_id, amount, origin)
        return pairs

    def debit_batch(
        self, u: UnitOfWork, account: str, ids: Sequence[int], amounts: Sequence[int]
    ) -> List[Tuple[int, int]]:
        pairs = coalesce(self.math, ids, amounts)
        for token_id, amount in pairs:
            self.debit(u, account, token_id, amount)
        return pairs


__all__ = ["PartitionLedger", "coalesce", "require_id"]
