"""
Non-fungible ownership registry
===============================

One record per token id, a secondary per-owner index used to answer
ownership counts, and blanket operator approvals, stored under the
non-fungible namespace (``nft`` by default).

Storage layout
--------------
    key("token", token_id)             → JSON {tokenId, owner, tokenURI, approved}
    key("owner", owner, token_id)      → b"\\x00" marker
    key("operator", owner, operator)   → JSON approval record (see approvals)

A record exists iff the token was minted and not burned; every record has
exactly one owner and exactly one matching index entry.

Events
------
- Transfer {from, to, tokenId}
- Approval {owner, approved, tokenId}
- ApprovalForAll {owner, operator, approved}
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..db.kv import NONFUNGIBLE
from ..errors import (AlreadyExists, InvalidArgument, NotFound, SelfOperation,
                      Unauthorized)
from ..runtime.events import (EV_APPROVAL, EV_APPROVAL_FOR_ALL, EV_TRANSFER,
                              ApprovalForAllPayload, NftApprovalPayload,
                              NftTransferPayload)
from ..runtime.host import UnitOfWork
from . import TokenBase, require_account, require_flag
from .approvals import ApprovalStore

INDEX_MARKER = b"\x00"


class NftRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    token_id: str = Field(alias="tokenId")
    owner: str
    token_uri: str = Field("", alias="tokenURI")
    approved: Optional[str] = None

    def encode(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")


def require_token_id(token_id) -> str:
    if not isinstance(token_id, str) or not token_id:
        raise InvalidArgument("tokenId must be a non-empty string", token_id=token_id)
    return token_id


class NonFungibleToken(TokenBase):
    NAMESPACE = NONFUNGIBLE
    VARIANT = "nft"

    def __init__(self, host, ns=None) -> None:
        super().__init__(host, ns)
        self.approvals = ApprovalStore(self.ns)
        self.p_token = self.ns.key("token")

    def key_token(self, token_id: str) -> bytes:
        return self.ns.key("token", token_id)

    def key_index(self, owner: str, token_id: str) -> bytes:
        return self.ns.key("owner", owner, token_id)

    # --- record IO ---

    def _load(self, u: UnitOfWork, token_id: str) -> NftRecord:
        require_token_id(token_id)
        raw = u.get(self.key_token(token_id))
        if raw is None:
            raise NotFound("token", key=token_id)
        return NftRecord.model_validate_json(raw)

    def _store(self, u: UnitOfWork, rec: NftRecord) -> None:
        u.put(self.key_token(rec.token_id), rec.encode())

    # ------------------------------------------------------------------ #
    # Mint / burn
    # ------------------------------------------------------------------ #

    def mint_with_uri(self, token_id: str, uri: str) -> NftRecord:
        with self._op("mint_with_uri") as u:
            self.gate.require_issuer(u)
            require_token_id(token_id)
            if not isinstance(uri, str):
                raise InvalidArgument("tokenURI must be a string", uri=uri)
            if u.has(self.key_token(token_id)):
                raise AlreadyExists("token", key=token_id)

            minter = u.caller
            rec = NftRecord(token_id=token_id, owner=minter, token_uri=uri)
            self._store(u, rec)
            u.put(self.key_index(minter, token_id), INDEX_MARKER)
            u.emit(EV_TRANSFER, NftTransferPayload(from_=self.zero, to=minter, token_id=token_id))
        return rec

    def burn(self, token_id: str) -> bool:
        with self._op("burn") as u:
            rec = self._load(u, token_id)
            owner = u.caller
            if rec.owner != owner:
                raise Unauthorized("non-fungible token is not owned by the caller", caller=owner, token_id=token_id)
            u.delete(self.key_token(token_id))
            u.delete(self.key_index(owner, token_id))
            u.emit(EV_TRANSFER, NftTransferPayload(from_=owner, to=self.zero, token_id=token_id))
        return True

    # ------------------------------------------------------------------ #
    # Approvals
    # ------------------------------------------------------------------ #

    def approve(self, operator: str, token_id: str) -> bool:
        with self._op("approve") as u:
            require_account(operator, self.zero, what="operator")
            rec = self._load(u, token_id)
            sender = u.caller
            if sender != rec.owner and not self.approvals.is_approved_for_all(u, rec.owner, sender):
                raise Unauthorized("caller is neither the owner nor an operator of the owner", caller=sender, token_id=token_id)
            self._store(u, rec.model_copy(update={"approved": operator}))
            u.emit(EV_APPROVAL, NftApprovalPayload(owner=rec.owner, approved=operator, token_id=token_id))
        return True

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

    def get_approved(self, token_id: str) -> Optional[str]:
        with self._op("get_approved") as u:
            return self._load(u, token_id).approved

    # ------------------------------------------------------------------ #
    # Transfers
    # ------------------------------------------------------------------ #

    def transfer_from(self, from_: str, to: str, token_id: str) -> bool:
        with self._op("transfer_from") as u:
            require_account(to, self.zero, what="recipient")
            rec = self._load(u, token_id)
            sender = u.caller
            owner = rec.owner
            if not (
                sender == owner
                or sender == rec.approved
                or self.approvals.is_approved_for_all(u, owner, sender)
            ):
                raise Unauthorized("caller is not owner nor approved", caller=sender, token_id=token_id)
            if from_ != owner:
                raise InvalidArgument("from account is not the current owner", from_=from_, owner=owner)

            u.delete(self.key_index(owner, token_id))
            self._store(u, rec.model_copy(update={"owner": to, "approved": None}))
            u.put(self.key_index(to, token_id), INDEX_MARKER)
            u.emit(EV_TRANSFER, NftTransferPayload(from_=from_, to=to, token_id=token_id))
        return True

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def owner_of(self, token_id: str) -> str:
        with self._op("owner_of") as u:
            return self._load(u, token_id).owner

    def token_uri(self, token_id: str) -> str:
        with self._op("token_uri") as u:
            return self._load(u, token_id).token_uri

    def balance_of(self, owner: str) -> int:
        with self._op("balance_of") as u:
            require_account(owner, what="owner")
            return sum(1 for _ in u.scan(self.ns.key("owner", owner)))

    def total_supply(self) -> int:
        with self._op("total_supply") as u:
            return sum(1 for _ in u.scan(self.p_token))

    def client_account_balance(self) -> int:
        with self._op("client_account_balance") as u:
            return sum(1 for _ in u.scan(self.ns.key("owner", u.caller)))


__all__ = ["NonFungibleToken", "NftRecord"]
