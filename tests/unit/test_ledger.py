"""Unit tests for the balance ledger guard"""

import logging
import pytest
from unittest.mock import MagicMock
from loyalty_gateway.domain.exceptions import InsufficientFundsError, InvalidAmountError, InvalidOrderNumberError
from loyalty_gateway.domain.ledger import LedgerGuard
from loyalty_gateway.domain.models import OrderStatus


@pytest.fixture
def guard(memory_storage):
    memory_storage.add_order("user-a", "79927398713", OrderStatus.PROCESSED, 50000)
    memory_storage.add_order("user-a", "12345678903", OrderStatus.PROCESSING)
    memory_storage.add_order("user-b", "4561261212345467", OrderStatus.PROCESSED, 1000)
    return LedgerGuard(memory_storage)


def test_balance_counts_only_processed_orders(guard):
    balance = guard.get_balance("user-a")

    assert balance.current_cents == 50000
    assert balance.withdrawn_cents == 0


def test_unknown_user_has_zero_balance(guard):
    balance = guard.get_balance("nobody")

    assert balance.current_cents == 0
    assert balance.withdrawn_cents == 0


def test_withdraw_reduces_balance(guard):
    withdrawal = guard.withdraw("user-a", "2377225624", 12550)

    assert withdrawal.amount_cents == 12550
    assert withdrawal.order_number == "2377225624"
    balance = guard.get_balance("user-a")
    assert balance.current_cents == 37450
    assert balance.withdrawn_cents == 12550


def test_withdraw_entire_balance(guard):
    guard.withdraw("user-a", "2377225624", 50000)

    assert guard.get_balance("user-a").current_cents == 0


def test_withdraw_more_than_balance_is_rejected(guard, caplog):
    with caplog.at_level(logging.INFO):
        with pytest.raises(InsufficientFundsError):
            guard.withdraw("user-a", "2377225624", 50001)

    assert "Withdrawal rejected" in caplog.text
    assert guard.get_withdrawals("user-a") == []


def test_balances_are_per_user(guard):
    with pytest.raises(InsufficientFundsError):
        guard.withdraw("user-b", "2377225624", 5000)


@pytest.mark.parametrize("amount_cents", [0, -100])
def test_non_positive_amount_is_rejected(guard, amount_cents):
    with pytest.raises(InvalidAmountError):
        guard.withdraw("user-a", "2377225624", amount_cents)


def test_order_number_must_pass_luhn(guard):
    with pytest.raises(InvalidOrderNumberError):
        guard.withdraw("user-a", "2377225625", 100)


def test_withdrawals_listed_newest_first(guard):
    guard.withdraw("user-a", "2377225624", 100)
    guard.withdraw("user-a", "49927398716", 200)

    withdrawals = guard.get_withdrawals("user-a")

    assert [w.order_number for w in withdrawals] == ["49927398716", "2377225624"]


def test_amount_beyond_storage_range_never_reaches_storage():
    storage = MagicMock()
    guard = LedgerGuard(storage)

    with pytest.raises(InsufficientFundsError):
        guard.withdraw("user-a", "2377225624", 10**22)

    storage.create_withdrawal.assert_not_called()
