from __future__ import annotations

import pytest

from tokenledger.errors import ArithmeticOverflow, InsufficientFunds, InvalidAmount
from tokenledger.math.safe_uint import SafeUint, checked_add, checked_sub


def test_add_within_range():
    m = SafeUint(8)
    assert m.add(200, 55) == 255


def test_add_overflow_reports_operands():
    m = SafeUint(8)
    with pytest.raises(ArithmeticOverflow) as ei:
        m.add(200, 56)
    assert ei.value.data == {"a": 200, "b": 56, "limit": 255}


def test_sub_underflow_is_insufficient_funds():
    m = SafeUint(64)
    with pytest.raises(InsufficientFunds) as ei:
        m.sub(3, 5, token_id=9)
    assert ei.value.needed == 5
    assert ei.value.available == 3
    assert ei.value.data["token_id"] == 9


@pytest.mark.parametrize("bad", [-1, 256, 1.5, "3", True, None])
def test_operands_must_be_in_range_ints(bad):
    m = SafeUint(8)
    with pytest.raises(InvalidAmount):
        m.add(bad, 0)


def test_require_positive_rejects_zero():
    with pytest.raises(InvalidAmount):
        SafeUint(64).require_positive(0)


@pytest.mark.parametrize("bits", [0, 257])
def test_width_bounds(bits):
    with pytest.raises(ValueError):
        SafeUint(bits)


def test_module_helpers_use_configured_width(monkeypatch):
    from tokenledger.config import get_settings

    monkeypatch.setenv("TOKENLEDGER_AMOUNT_BITS", "16")
    get_settings.cache_clear()
    assert checked_add(65000, 535) == 65535
    with pytest.raises(ArithmeticOverflow):
        checked_add(65000, 536)
    assert checked_sub(10, 10) == 0
