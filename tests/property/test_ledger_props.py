"""
Property tests for the ledger invariants.

1) Fungible: for any sequence of mint / burn / transfer, the sum of all
   balances equals the total supply, whether or not individual steps fail.
2) Multi-token: balance_of(account, id) equals the sum of its partitions for
   any sequence of credits and debits; zero-amount partitions never exist.
3) Round trip: credit(A, id, n) then debit(A, id, n) leaves nothing behind.
4) Atomic failure: a debit that asks for more than is there changes nothing.

Each example builds its own in-memory store (hypothesis reuses function-scoped
fixtures across examples, so they are not used here).
"""
from __future__ import annotations

from hypothesis import HealthCheck, given, settings, strategies as st

from tokenledger.config import Settings
from tokenledger.db import open_kv
from tokenledger.errors import TokenError
from tokenledger.runtime.host import Host, StaticIdentity
from tokenledger.token.fungible import FungibleToken
from tokenledger.token.multi import MultiToken

ACCOUNTS = ["alice", "bob", "carol", "dave"]
ISSUER = "mailabs"

AMOUNT = st.integers(min_value=1, max_value=1_000)
ACCT = st.sampled_from(ACCOUNTS)
TOKEN_ID = st.integers(min_value=0, max_value=3)


def _host(bits: int = 64):
    ident = StaticIdentity("alice", ISSUER)
    return Host(open_kv("memory://"), ident, settings=Settings(_env_file=None, amount_bits=bits)), ident


# -----------------------------------------------------------------------------
# Fungible supply conservation
# -----------------------------------------------------------------------------

FT_STEP = st.one_of(
    st.tuples(st.just("mint"), ACCT, AMOUNT),
    st.tuples(st.just("burn"), ACCT, AMOUNT),
    st.tuples(st.just("transfer"), ACCT, ACCT, AMOUNT),
)


@settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(steps=st.lists(FT_STEP, min_size=1, max_size=25))
def test_fungible_sum_of_balances_equals_supply(steps):
    host, ident = _host()
    ft = FungibleToken(host)
    ft.initialize("Kard", "KRD")
    for step in steps:
        kind, who = step[0], step[1]
        try:
            with ident.acting_as(who, ISSUER):
                if kind == "mint":
                    ft.mint(step[2])
                elif kind == "burn":
                    ft.burn(step[2])
                else:
                    ft.transfer(step[2], step[3])
        except TokenError:
            pass
        assert sum(ft.balance_of(a) for a in ACCOUNTS) == ft.total_supply()


# -----------------------------------------------------------------------------
# Multi-token partitions
# -----------------------------------------------------------------------------

MT_STEP = st.one_of(
    st.tuples(st.just("mint"), ACCT, ACCT, TOKEN_ID, AMOUNT),
    st.tuples(st.just("transfer"), ACCT, ACCT, TOKEN_ID, AMOUNT),
    st.tuples(st.just("burn"), ACCT, ACCT, TOKEN_ID, AMOUNT),
)


@settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(steps=st.lists(MT_STEP, min_size=1, max_size=25))
def test_multi_balance_is_sum_of_partitions(steps):
    host, ident = _host()
    mt = MultiToken(host)
    mt.initialize("Kard", "KRD")
    minted = 0
    burned = 0
    for kind, who, other, token_id, amount in steps:
        try:
            with ident.acting_as(who, ISSUER):
                if kind == "mint":
                    mt.mint(other, token_id, amount)
                    minted += amount
                elif kind == "transfer":
                    mt.transfer_from(who, other, token_id, amount)
                else:
                    mt.burn(who, token_id, amount)
                    burned += amount
        except TokenError:
            pass

    total = 0
    for a in ACCOUNTS:
        for token_id in range(4):
            parts = mt.entries(a, token_id)
            assert all(v > 0 for v in parts.values())
            bal = mt.balance_of(a, token_id)
            assert bal == sum(parts.values())
            total += bal
    assert total == minted - burned


@settings(max_examples=50, deadline=None)
@given(
    credits=st.lists(st.tuples(ACCT, AMOUNT), min_size=0, max_size=6),
    n=AMOUNT,
)
def test_credit_then_debit_round_trip(credits, n):
    host, _ = _host()
    mt = MultiToken(host)
    mt.initialize("Kard", "KRD")
    before = {}
    with host.unit("seed") as u:
        for origin, amount in credits:
            mt.ledger.credit(u, "acct", 1, amount, origin)
        before = mt.ledger.entries(u, "acct", 1)
    with host.unit("round-trip") as u:
        mt.ledger.credit(u, "acct", 1, n, "acct")
        mt.ledger.debit(u, "acct", 1, n)
    after = mt.entries("acct", 1)
    assert sum(after.values()) == sum(before.values())
    if not credits:
        assert after == {}


@settings(max_examples=50, deadline=None)
@given(
    credits=st.lists(st.tuples(ACCT, AMOUNT), min_size=0, max_size=6),
    extra=st.integers(min_value=1, max_value=50),
)
def test_over_debit_is_atomic(credits, extra):
    host, _ = _host()
    mt = MultiToken(host)
    mt.initialize("Kard", "KRD")
    with host.unit("seed") as u:
        for origin, amount in credits:
            mt.ledger.credit(u, "acct", 2, amount, origin)
    before = mt.entries("acct", 2)
    want = sum(before.values()) + extra
    try:
        with host.unit("over-debit") as u:
            mt.ledger.debit(u, "acct", 2, want)
    except TokenError as e:
        assert e.data["available"] == sum(before.values())
    else:
        raise AssertionError("over-debit succeeded")
    assert mt.entries("acct", 2) == before


@settings(max_examples=40, deadline=None)
@given(
    start=st.integers(min_value=0, max_value=255),
    add=st.integers(min_value=0, max_value=255),
)
def test_overflow_never_wraps(start, add):
    host, ident = _host(bits=8)
    mt = MultiToken(host)
    mt.initialize("Kard", "KRD")
    if start:
        mt.mint("bob", 1, start)
    try:
        if add:
            mt.mint("bob", 1, add)
    except TokenError:
        assert start + add > 255
        assert mt.balance_of("bob", 1) == start
    else:
        assert mt.balance_of("bob", 1) == start + add
