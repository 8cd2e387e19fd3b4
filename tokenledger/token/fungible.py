"""
Fungible token ledger
=====================

Single-counter balances per account, a total supply, and spender allowances,
stored under the fungible namespace (``ft`` by default).

Storage layout
--------------
    key("balance", account)            → 32-byte amount
    key("supply")                      → 32-byte amount
    key("allowance", owner, spender)   → 32-byte amount   (see approvals)

Invariants
----------
- Σ balance entries == supply after every committed operation.
- Entries that reach zero are deleted; absent entries read as 0.
- Every change goes through `SafeUint.add` / `SafeUint.sub`.

Events
------
- Transfer {from, to, value}   (mint: from = zero address; burn: to = zero address)
- Approval {owner, spender, value}

Public interface
----------------
initialize(name, symbol, decimals=None) -> bool   (issuer only, once)
mint(amount) -> bool                               (issuer only; credits caller)
burn(amount) -> bool                               (issuer only; debits caller)
transfer(to, amount) -> bool
approve(spender, amount) -> bool
allowance(owner, spender) -> int
transfer_from(from_, to, amount) -> bool
balance_of(account) -> int
total_supply() -> int
client_account_balance() -> int
"""

from __future__ import annotations

from ..db.kv import FUNGIBLE
from ..errors import AllowanceExceeded
from ..logging import get_logger
from ..runtime.events import (EV_APPROVAL, EV_TRANSFER, ApprovalPayload,
                              TransferPayload)
from ..runtime.host import UnitOfWork
from . import (TokenBase, read_amount, require_account, require_distinct,
               write_amount)
from .approvals import ApprovalStore

log = get_logger(__name__)


class FungibleToken(TokenBase):
    NAMESPACE = FUNGIBLE
    VARIANT = "ft"

    def __init__(self, host, ns=None) -> None:
        super().__init__(host, ns)
        self.approvals = ApprovalStore(self.ns)
        self.k_supply = self.ns.key("supply")

    def key_balance(self, account: str) -> bytes:
        return self.ns.key("balance", account)

    # ------------------------------------------------------------------ #
    # Internal balance movement
    # ------------------------------------------------------------------ #

    def _move(self, u: UnitOfWork, src: str, dst: str, amount: int) -> None:
        require_account(dst, self.zero, what="recipient")
        require_distinct(src, dst)
        self.math.require_positive(amount)

        src_bal = self.math.sub(read_amount(u, self.key_balance(src)), amount)
        dst_bal = self.math.add(read_amount(u, self.key_balance(dst)), amount)
        write_amount(u, self.key_balance(src), src_bal)
        write_amount(u, self.key_balance(dst), dst_bal)

    # ------------------------------------------------------------------ #
    # Supply control (issuer only)
    # ------------------------------------------------------------------ #

    def mint(self, amount: int) -> bool:
        with self._op("mint") as u:
            self.gate.require_issuer(u)
            self.math.require_positive(amount)
            minter = u.caller

            bal = self.math.add(read_amount(u, self.key_balance(minter)), amount)
            supply = self.math.add(read_amount(u, self.k_supply), amount)
            write_amount(u, self.key_balance(minter), bal)
            write_amount(u, self.k_supply, supply)
            u.emit(EV_TRANSFER, TransferPayload(from_=self.zero, to=minter, value=amount))
        log.info("minted", account=minter, amount=amount)
        return True

    def burn(self, amount: int) -> bool:
        with self._op("burn") as u:
            self.gate.require_issuer(u)
            self.math.require_positive(amount)
            minter = u.caller

            bal = self.math.sub(read_amount(u, self.key_balance(minter)), amount)
            supply = self.math.sub(read_amount(u, self.k_supply), amount)
            write_amount(u, self.key_balance(minter), bal)
            write_amount(u, self.k_supply, supply)
            u.emit(EV_TRANSFER, TransferPayload(from_=minter, to=self.zero, value=amount))
        log.info("burned", account=minter, amount=amount)
        return True

    # ------------------------------------------------------------------ #
    # Transfers & allowances
    # ------------------------------------------------------------------ #

    def transfer(self, to: str, amount: int) -> bool:
        with self._op("transfer") as u:
            sender = u.caller
            self._move(u, sender, to, amount)
            u.emit(EV_TRANSFER, TransferPayload(from_=sender, to=to, value=amount))
        return True

    def approve(self, spender: str, amount: int) -> bool:
        with self._op("approve") as u:
            owner = u.caller
            require_account(spender, self.zero, what="spender")
            self.math.require(amount)
            self.approvals.set_allowance(u, owner, spender, amount)
            u.emit(EV_APPROVAL, ApprovalPayload(owner=owner, spender=spender, value=amount))
        return True

    def allowance(self, owner: str, spender: str) -> int:
        with self._op("allowance") as u:
            require_account(owner, what="owner")
            require_account(spender, what="spender")
            return self.approvals.allowance(u, owner, spender)

    def transfer_from(self, from_: str, to: str, amount: int) -> bool:
        with self._op("transfer_from") as u:
            spender = u.caller
            require_account(from_, self.zero, what="sender")
            self.math.require_positive(amount)

            current = self.approvals.allowance(u, from_, spender)
            if current < amount:
                raise AllowanceExceeded(from_, spender, current, amount)
            self._move(u, from_, to, amount)
            self.approvals.set_allowance(u, from_, spender, self.math.sub(current, amount))
            u.emit(EV_TRANSFER, TransferPayload(from_=from_, to=to, value=amount))
        return True

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def balance_of(self, account: str) -> int:
        with self._op("balance_of") as u:
            require_account(account)
            return read_amount(u, self.key_balance(account))

    def total_supply(self) -> int:
        with self._op("total_supply") as u:
            return read_amount(u, self.k_supply)

    def client_account_balance(self) -> int:
        with self._op("client_account_balance") as u:
            return read_amount(u, self.key_balance(u.caller))


__all__ = ["FungibleToken"]
