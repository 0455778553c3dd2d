"""Unit tests for order number validation and money conversion"""

import pytest
from decimal import Decimal
from loyalty_gateway.utils.luhn import is_valid_luhn
from loyalty_gateway.utils.money import from_cents, to_cents


@pytest.mark.parametrize("number", ["79927398713", "12345678903", "4561261212345467", "2377225624", "0"])
def test_valid_luhn_numbers(number):
    assert is_valid_luhn(number) is True


@pytest.mark.parametrize("number", ["79927398710", "12345678900", "1234567812345678"])
def test_invalid_luhn_checksum(number):
    assert is_valid_luhn(number) is False


@pytest.mark.parametrize("number", ["", "  ", "7992739871a", "-79927398713", "7992 7398 713", "７９９２７３９８７１３"])
def test_non_digit_input_rejected(number):
    """Whitespace, signs, letters and non-ASCII digits never pass"""
    assert is_valid_luhn(number) is False


def test_to_cents_rounds_half_up():
    assert to_cents(500) == 50000
    assert to_cents(729.98) == 72998
    assert to_cents("0.005") == 1
    assert to_cents(Decimal("10.004")) == 1000


def test_from_cents():
    assert from_cents(72998) == 729.98
    assert from_cents(0) == 0.0


def test_to_cents_handles_huge_amounts():
    assert to_cents(1e20) == 10**22
    assert to_cents(1e300) == 10**302


@pytest.mark.parametrize("amount", [float("inf"), float("-inf"), float("nan"), "Infinity"])
def test_to_cents_rejects_non_finite(amount):
    with pytest.raises(ValueError):
        to_cents(amount)
