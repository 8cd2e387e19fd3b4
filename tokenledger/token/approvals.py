"""
Approval storage shared by the token variants.

Two tables under a variant's namespace:

    key("allowance", owner, spender) → 32-byte amount    (fungible)
    key("operator", owner, operator) → JSON {owner, operator, approved}

Both are plain overwrites: the latest call replaces the previous value, it
never adds to it. A pair that was never written reads as 0 / False. A zero
allowance is deleted instead of stored.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from ..db.kv import Prefix
from ..runtime.host import UnitOfWork
from . import read_amount, write_amount


class OperatorApproval(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str
    operator: str
    approved: bool


class ApprovalStore:
    def __init__(self, ns: Prefix) -> None:
        self.ns = ns

    def key_allowance(self, owner: str, spender: str) -> bytes:
        return self.ns.key("allowance", owner, spender)

    def key_operator(self, owner: str, operator: str) -> bytes:
        return self.ns.key("operator", owner, operator)

    # --- allowances ---

    def allowance(self, u: UnitOfWork, owner: str, spender: str) -> int:
        return read_amount(u, self.key_allowance(owner, spender))

    def set_allowance(self, u: UnitOfWork, owner: str, spender: str, amount: int) -> None:
        write_amount(u, self.key_allowance(owner, spender), amount)

    # --- operators ---

    def is_approved_for_all(self, u: UnitOfWork, owner: str, operator: str) -> bool:
        raw = u.get(self.key_operator(owner, operator))
        if raw is None:
            return False
        return OperatorApproval.model_validate_json(raw).approved

    def set_approval_for_all(self, u: UnitOfWork, owner: str, operator: str, approved: bool) -> None:
        rec = OperatorApproval(owner=owner, operator=operator, approved=approved)
        u.put(self.key_operator(owner, operator), rec.model_dump_json().encode("utf-8"))


__all__ = ["ApprovalStore", "OperatorApproval"]
