"""
Multi-token (semi-fungible) surface
===================================

Public operations over the partitioned ledger in
`tokenledger.token.partitions`, stored under the multi-token namespace
(``mt`` by default).

Rules
-----
- `mint`, `mint_batch`, `burn`, `burn_batch` and `set_uri` are issuer-gated.
- `burn*` additionally require the caller to be the account or an approved
  operator of the account.
- `transfer_from*` require the caller to be the sender or an approved
  operator of the sender; sender and recipient must differ and neither may
  be the zero address.
- Mints credit the minter's partition of the recipient; transfers credit the
  sender's partition of the recipient.
- Batch operations coalesce duplicate ids, run in ascending id order and
  emit exactly one TransferBatch event with the coalesced arrays.
- Empty batches are rejected with InvalidArgument.

Storage layout
--------------
    key("balance", account, id, origin) → 32-byte amount    (partitions)
    key("operator", owner, operator)    → JSON approval     (approvals)
    key("uri")                          → UTF-8 URI template containing "{id}"
"""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from ..db.kv import MULTI
from ..errors import (InvalidArgument, LengthMismatch, NotFound,
                      SelfOperation, Unauthorized)
from ..logging import get_logger
from ..runtime.events import (EV_APPROVAL_FOR_ALL, EV_TRANSFER_BATCH,
                              EV_TRANSFER_SINGLE, EV_URI,
                              ApprovalForAllPayload, TransferBatchPayload,
                              TransferSinglePayload, UriPayload)
from ..runtime.host import UnitOfWork
from . import TokenBase, require_account, require_distinct, require_flag
from .approvals import ApprovalStore
from .partitions import PartitionLedger, require_id

log = get_logger(__name__)


class MultiToken(TokenBase):
    NAMESPACE = MULTI
    VARIANT = "mt"

    def __init__(self, host, ns=None) -> None:
        super().__init__(host, ns)
        self.ledger = PartitionLedger(self.ns, self.math)
        self.approvals = ApprovalStore(self.ns)
        self.k_uri = self.ns.key("uri")

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _require_operator(self, u: UnitOfWork, account: str) -> str:
        """Caller must be `account` or one of its approved operators."""
        caller = u.caller
        if caller != account and not self.approvals.is_approved_for_all(u, account, caller):
            raise Unauthorized("caller is not owner nor approved", caller=caller, account=account)
        return caller

    def _require_amounts(self, amounts: Sequence[int]) -> None:
        if not amounts:
            raise InvalidArgument("batch must name at least one id")
        for amount in amounts:
            self.math.require_positive(amount)

    def _emit_batch(self, u: UnitOfWork, operator: str, src: str, dst: str, pairs: List[Tuple[int, int]]) -> None:
        u.emit(
            EV_TRANSFER_BATCH,
            TransferBatchPayload(
                operator=operator,
                from_=src,
                to=dst,
                ids=tuple(i for i, _ in pairs),
                values=tuple(a for _, a in pairs),
            ),
        )

    # ------------------------------------------------------------------ #
    # Mint / burn (issuer only)
    # ------------------------------------------------------------------ #

    def mint(self, account: str, token_id: int, amount: int) -> bool:
        with self._op("mint") as u:
            self.gate.require_issuer(u)
            require_account(account, self.zero)
            require_id(token_id)
            self.math.require_positive(amount)
            operator = u.caller
            self.ledger.credit(u, account, token_id, amount, operator)
            u.emit(
                EV_TRANSFER_SINGLE,
                TransferSinglePayload(operator=operator, from_=self.zero, to=account, id=token_id, value=amount),
            )
        log.info("minted", account=account, id=token_id, amount=amount)
        return True

    def mint_batch(self, account: str, ids: Sequence[int], amounts: Sequence[int]) -> bool:
        with self._op("mint_batch") as u:
            self.gate.require_issuer(u)
            require_account(account, self.zero)
            if len(ids) != len(amounts):
                raise LengthMismatch(len(ids), len(amounts))
            self._require_amounts(amounts)
            operator = u.caller
            pairs = self.ledger.credit_batch(u, account, ids, amounts, operator)
            self._emit_batch(u, operator, self.zero, account, pairs)
        log.info("minted_batch", account=account, ids=[i for i, _ in pairs])
        return True

    def burn(self, account: str, token_id: int, amount: int) -> bool:
        with self._op("burn") as u:
            self.gate.require_issuer(u)
            require_account(account, self.zero)
            operator = self._require_operator(u, account)
            require_id(token_id)
            self.math.require_positive(amount)
            self.ledger.debit(u, account, token_id, amount)
            u.emit(
                EV_TRANSFER_SINGLE,
                TransferSinglePayload(operator=operator, from_=account, to=self.zero, id=token_id, value=amount),
            )
        log.info("burned", account=account, id=token_id, amount=amount)
        return True

    def burn_batch(self, account: str, ids: Sequence[int], amounts: Sequence[int]) -> bool:
        with self._op("burn_batch") as u:
            self.gate.require_issuer(u)
            require_account(account, self.zero)
            operator = self._require_operator(u, account)
            if len(ids) != len(amounts):
                raise LengthMismatch(len(ids), len(amounts))
            self._require_amounts(amounts)
            pairs = self.ledger.debit_batch(u, account, ids, amounts)
            self._emit_batch(u, operator, account, self.zero, pairs)
        log.info("burned_batch", account=account, ids=[i for i, _ in pairs])
        return True

    # ------------------------------------------------------------------ #
    # Transfers
    # ------------------------------------------------------------------ #

    def _check_transfer(self, u: UnitOfWork, from_: str, to: str) -> str:
        require_account(from_, self.zero, what="sender")
        require_account(to, self.zero, what="recipient")
        require_distinct(from_, to)
        return self._require_operator(u, from_)

    def transfer_from(self, from_: str, to: str, token_id: int, amount: int) -> bool:
        with self._op("transfer_from") as u:
            operator = self._check_transfer(u, from_, to)
            require_id(token_id)
            self.math.require_positive(amount)
            self.ledger.debit(u, from_, token_id, amount)
            self.ledger.credit(u, to, token_id, amount, from_)
            u.emit(
                EV_TRANSFER_SINGLE,
                TransferSinglePayload(operator=operator, from_=from_, to=to, id=token_id, value=amount),
            )
        return True

    def batch_transfer_from(self, from_: str, to: str, ids: Sequence[int], amounts: Sequence[int]) -> bool:
        with self._op("batch_transfer_from") as u:
            operator = self._check_transfer(u, from_, to)
            if len(ids) != len(amounts):
                raise LengthMismatch(len(ids), len(amounts))
            self._require_amounts(amounts)
            pairs = self.ledger.debit_batch(u, from_, ids, amounts)
            for token_id, amount in pairs:
                self.ledger.credit(u, to, token_id, amount, from_)
            self._emit_batch(u, operator, from_, to, pairs)
        return True

    # ------------------------------------------------------------------ #
    # Operators
    # ------------------------------------------------------------------ #

    def set_approval_for_all(self, operator: str, approved: bool) -> bool:
        with self._op("set_approval_for_all") as u:
            require_account(operator, self.zero, what="operator")
            require_flag(approved)
            owner = u.caller
            if operator == owner:
                raise SelfOperation(owner, "cannot set approval for all to self")
            self.approvals.set_approval_for_all(u, owner, operator, approved)
            u.emit(EV_APPROVAL_FOR_ALL, ApprovalForAllPayload(owner=owner, operator=operator, approved=approved))
        return True

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        with self._op("is_approved_for_all") as u:
            require_account(owner, what="owner")
            require_account(operator, what="operator")
            return self.approvals.is_approved_for_all(u, owner, operator)

    # ------------------------------------------------------------------ #
    # Balances
    # ------------------------------------------------------------------ #

    def balance_of(self, account: str, token_id: int) -> int:
        with self._op("balance_of") as u:
            require_account(account)
            require_id(token_id)
            return self.ledger.balance_of(u, account, token_id)

    def balance_of_batch(self, accounts: Sequence[str], ids: Sequence[int]) -> List[int]:
        with self._op("balance_of_batch") as u:
            if len(accounts) != len(ids):
                raise LengthMismatch(len(accounts), len(ids), what="accounts/ids")
            out: List[int] = []
            for account, token_id in zip(accounts, ids):
                require_account(account)
                require_id(token_id)
                out.append(self.ledger.balance_of(u, account, token_id))
            return out

    def client_account_balance(self, token_id: int) -> int:
        with self._op("client_account_balance") as u:
            require_id(token_id)
            return self.ledger.balance_of(u, u.caller, token_id)

    def entries(self, account: str, token_id: int) -> Dict[str, int]:
        """Creditor origin → amount for (account, id); for audits and tests."""
        with self._op("entries") as u:
            require_account(account)
            require_id(token_id)
            return self.ledger.entries(u, account, token_id)

    # ------------------------------------------------------------------ #
    # URI
    # ------------------------------------------------------------------ #

    def set_uri(self, uri: str) -> bool:
        with self._op("set_uri") as u:
            self.gate.require_issuer(u)
            placeholder = self.settings.uri_placeholder
            if not isinstance(uri, str) or placeholder not in uri:
                raise InvalidArgument(f"uri must contain {placeholder}", uri=uri)
            u.put(self.k_uri, uri.encode("utf-8"))
            u.emit(EV_URI, UriPayload(value=uri))
        return True

    def uri(self, token_id: int) -> str:
        """The URI template; clients substitute the id themselves."""
        with self._op("uri") as u:
            require_id(token_id)
            raw = u.get(self.k_uri)
            if raw is None:
                raise NotFound("uri")
            return raw.decode("utf-8")


__all__ = ["MultiToken"]
