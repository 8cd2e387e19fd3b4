from __future__ import annotations

import json

import pytest

from tokenledger.config import get_settings
from tokenledger.db import open_kv
from tokenledger.errors import IdentityUnavailable, InvalidAmount, StateConflict
from tokenledger.runtime.events import EV_URI, UriPayload
from tokenledger.runtime.host import Host, StaticIdentity
from tokenledger.runtime.journal import Journal
from tokenledger.token.fungible import FungibleToken


# -----------------------------------------------------------------------------
# Journal
# -----------------------------------------------------------------------------


def test_overlay_reads_take_precedence(kv):
    kv.put(b"a", b"base")
    j = Journal(kv)
    assert j.get(b"a") == b"base"
    j.put(b"a", b"new")
    j.delete(b"b")
    assert j.get(b"a") == b"new"
    assert not j.has(b"b")
    # nothing reached the store yet
    assert kv.get(b"a") == b"base"


def test_scan_merges_writes_and_deletions(kv):
    kv.put(b"p:1", b"one")
    kv.put(b"p:2", b"two")
    j = Journal(kv)
    j.delete(b"p:1")
    j.put(b"p:3", b"three")
    j.put(b"q:0", b"other")
    assert list(j.iter_prefix(b"p:")) == [(b"p:2", b"two"), (b"p:3", b"three")]


def test_scan_is_safe_to_mutate_while_iterating(kv):
    for i in range(3):
        kv.put(b"p:%d" % i, b"x")
    j = Journal(kv)
    for k, _ in j.iter_prefix(b"p:"):
        j.delete(k)
    assert list(j.iter_prefix(b"p:")) == []


def test_validate_detects_changed_key(kv):
    kv.put(b"a", b"1")
    j = Journal(kv)
    j.get(b"a")
    kv.put(b"a", b"2")
    with pytest.raises(StateConflict) as ei:
        j.validate(kv)
    assert ei.value.retryable is True


def test_validate_detects_changed_prefix(kv):
    j = Journal(kv)
    assert list(j.iter_prefix(b"p:")) == []
    kv.put(b"p:new", b"x")
    with pytest.raises(StateConflict):
        j.validate(kv)


def test_apply_writes_in_key_order(kv):
    j = Journal(kv)
    j.put(b"b", b"2")
    j.put(b"a", b"1")
    j.delete(b"c")
    kv.put(b"c", b"gone")
    with kv.batch() as b:
        assert j.apply(b) == 3
    assert kv.get(b"a") == b"1"
    assert kv.get(b"c") is None


# -----------------------------------------------------------------------------
# Unit of work
# -----------------------------------------------------------------------------


def test_unit_commits_writes_then_delivers_events(host, kv, sink):
    with host.unit("test.ok") as u:
        u.put(b"k", b"v")
        u.emit(EV_URI, UriPayload(value="ipfs://{id}"))
        assert len(sink) == 0
    assert kv.get(b"k") == b"v"
    assert sink.names() == [EV_URI]
    assert sink.decoded(EV_URI) == [{"value": "ipfs://{id}"}]


def test_unit_discards_everything_on_error(host, kv, sink):
    kv.put(b"k", b"old")
    with pytest.raises(InvalidAmount):
        with host.unit("test.fail") as u:
            u.put(b"k", b"new")
            u.delete(b"other")
            u.emit(EV_URI, UriPayload(value="x{id}"))
            raise InvalidAmount(-1)
    assert kv.get(b"k") == b"old"
    assert len(sink) == 0


def test_unit_conflict_writes_nothing(host, kv, sink):
    kv.put(b"balance", b"\x05")
    with pytest.raises(StateConflict):
        with host.unit("test.race") as u:
            u.get(b"balance")
            u.put(b"balance", b"\x04")
            u.emit(EV_URI, UriPayload(value="{id}"))
            # another writer lands between our read and our commit
            kv.put(b"balance", b"\x09")
    assert kv.get(b"balance") == b"\x09"
    assert len(sink) == 0


def test_nested_unit_joins_outer(host, kv):
    with pytest.raises(RuntimeError):
        with host.unit("outer") as outer:
            with host.unit("inner") as inner:
                assert inner is outer
                inner.put(b"k", b"v")
            assert kv.get(b"k") is None
            raise RuntimeError("abort outer")
    assert kv.get(b"k") is None


def test_caller_is_resolved_once(kv, settings):
    class CountingIdentity(StaticIdentity):
        calls = 0

        def caller_id(self):
            CountingIdentity.calls += 1
            return super().caller_id()

    h = Host(kv, CountingIdentity("alice", "mailabs"), settings=settings)
    with h.unit("x") as u:
        assert u.caller == "alice"
        assert u.caller == "alice"
    assert CountingIdentity.calls == 1


def test_missing_identity_is_a_hard_failure(kv, settings):
    h = Host(kv, StaticIdentity("", ""), settings=settings)
    with pytest.raises(IdentityUnavailable):
        with h.unit("x") as u:
            u.caller


def test_acting_as_restores_previous_identity(identity):
    with identity.acting_as("bob", "org2"):
        assert identity.caller_id() == "bob"
        assert identity.caller_issuer() == "org2"
    assert identity.caller_id() == "alice"
    assert identity.caller_issuer() == "mailabs"


def test_event_payload_uses_wire_names():
    from tokenledger.runtime.events import TransferSinglePayload

    raw = TransferSinglePayload(operator="o", from_="a", to="b", id=1, value=2).encode()
    assert json.loads(raw) == {"operator": "o", "from": "a", "to": "b", "id": 1, "value": 2}


def test_host_from_settings_opens_configured_store(tmp_path, monkeypatch):
    path = tmp_path / "ledger.db"
    monkeypatch.setenv("TOKENLEDGER_DB_URI", f"sqlite:///{path}")
    get_settings.cache_clear()
    ident = StaticIdentity("alice", "mailabs")

    host = Host.from_settings(ident)
    ft = FungibleToken(host)
    ft.initialize("Kard", "KRD")
    ft.mint(7)
    host.kv.close()
    assert path.exists()

    store = open_kv()  # no uri: TOKENLEDGER_DB_URI
    try:
        assert FungibleToken(Host(store, ident)).balance_of("alice") == 7
    finally:
        store.close()
