from __future__ import annotations

import pytest

from tokenledger.db import open_kv
from tokenledger.db.kv import KV, MULTI, Prefix, be_u256, from_be, part_to_int
from tokenledger.db.sqlite import _upper_bound


# -----------------------------------------------------------------------------
# Composite keys
# -----------------------------------------------------------------------------


def test_key_layout_is_length_prefixed():
    p = Prefix("mt")
    assert p.raw == b"mt:"
    assert p.key("bal", 7) == b"mt:" + b"\x03bal" + b"\x01\x07"


def test_split_recovers_parts():
    k = MULTI.key("balance", "alice", 300, "bob:x")
    parts = MULTI.split(k)
    assert parts[0] == b"balance"
    assert parts[1] == b"alice"
    assert part_to_int(parts[2]) == 300
    assert parts[3] == b"bob:x"


def test_parts_may_contain_separator_and_long_values():
    long = "z" * 300  # length needs a two-byte uvarint
    k = MULTI.key("a:b", long, b"\x00\xff")
    assert MULTI.split(k) == [b"a:b", long.encode(), b"\x00\xff"]


def test_split_rejects_foreign_or_truncated_keys():
    with pytest.raises(ValueError):
        MULTI.split(Prefix("ft").key("x"))
    with pytest.raises(ValueError):
        MULTI.split(MULTI.key("abcdef")[:-2])


def test_shorter_key_is_prefix_of_longer():
    holding = MULTI.key("balance", "alice", 1)
    assert MULTI.key("balance", "alice", 1, "bob").startswith(holding)
    assert not MULTI.key("balance", "alice2", 1, "bob").startswith(holding)
    assert not MULTI.key("balance", "alice", 256, "bob").startswith(holding)


def test_key_part_types():
    with pytest.raises(ValueError):
        MULTI.key(-1)
    with pytest.raises(TypeError):
        MULTI.key(1.0)
    with pytest.raises(TypeError):
        MULTI.key(True)


def test_amount_encoding():
    assert len(be_u256(5)) == 32
    assert from_be(be_u256(2**200)) == 2**200


# -----------------------------------------------------------------------------
# SQLite backend
# -----------------------------------------------------------------------------


def test_upper_bound():
    assert _upper_bound(b"ab\x01") == b"ab\x02"
    assert _upper_bound(b"a\xff") == b"b"
    assert _upper_bound(b"\xff\xff") is None


def test_iter_prefix_all_ff_prefix_and_write_while_scanning(kv):
    kv.put(b"\xff\xff", b"1")
    kv.put(b"\xff\xff\x00", b"2")
    kv.put(b"\xfe", b"3")
    assert [k for k, _ in kv.iter_prefix(b"\xff\xff")] == [b"\xff\xff", b"\xff\xff\x00"]
    for k, _ in kv.iter_prefix(b"\xff"):
        kv.delete(k)
    assert list(kv.iter_prefix(b"\xff")) == []
    assert kv.get(b"\xfe") == b"3"


def test_sqlite_satisfies_protocol(kv):
    assert isinstance(kv, KV)


def test_iter_prefix_is_ordered_and_bounded(kv):
    kv.put(b"p:b", b"2")
    kv.put(b"p:a", b"1")
    kv.put(b"p;", b"x")
    kv.put(b"q:a", b"y")
    assert list(kv.iter_prefix(b"p:")) == [(b"p:a", b"1"), (b"p:b", b"2")]


def test_batch_commits_atomically(kv):
    with kv.batch() as b:
        b.put(b"k1", b"v1")
        b.put(b"k2", b"v2")
        b.delete(b"k1")
    assert kv.get(b"k1") is None
    assert kv.get(b"k2") == b"v2"


def test_batch_rolls_back_on_error(kv):
    kv.put(b"k", b"old")
    with pytest.raises(RuntimeError):
        with kv.batch() as b:
            b.put(b"k", b"new")
            b.put(b"other", b"x")
            raise RuntimeError("boom")
    assert kv.get(b"k") == b"old"
    assert not kv.has(b"other")


def test_open_kv_uris(tmp_path):
    path = tmp_path / "ledger.db"
    kv1 = open_kv(f"sqlite:///{path}")
    kv1.put(b"a", b"1")
    kv1.close()

    kv2 = open_kv(str(path))
    assert kv2.get(b"a") == b"1"
    kv2.close()

    with pytest.raises(ValueError):
        open_kv("rocksdb:///nope")
    with pytest.raises(FileNotFoundError):
        open_kv(f"sqlite:///{tmp_path / 'missing.db'}", create=False)
