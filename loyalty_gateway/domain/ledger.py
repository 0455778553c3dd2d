"""Balance ledger guard - balance lookups and withdrawal admission"""

import logging
from typing import List, Optional

from loyalty_gateway.domain.exceptions import InsufficientFundsError, InvalidAmountError, InvalidOrderNumberError
from loyalty_gateway.domain.models import UserBalance, Withdrawal
from loyalty_gateway.domain.storage import LedgerStorage
from loyalty_gateway.utils.luhn import is_valid_luhn
from loyalty_gateway.utils.money import MAX_CENTS


class LedgerGuard:
    """
    Entry point for balance reads and withdrawals.

    The balance is always recomputed from the ledger:
        current = sum(accrual of PROCESSED orders) - sum(withdrawals)

    The check-then-insert of a withdrawal is delegated to storage as one
    atomic operation; this class holds no locks of its own, so concurrent
    requests from separate handlers stay safe.
    """

    def __init__(self, storage: LedgerStorage, logger: Optional[logging.Logger] = None):
        self.storage = storage
        self.logger = logger or logging.getLogger(__name__)

    def get_balance(self, user_id: str) -> UserBalance:
        return self.storage.get_user_balance(user_id)

    def get_withdrawals(self, user_id: str) -> List[Withdrawal]:
        return self.storage.get_withdrawals(user_id)

    def withdraw(self, user_id: str, order_number: str, amount_cents: int) -> Withdrawal:
        """
        Spend points against an order number.

        Raises:
            InvalidOrderNumberError: Number fails the Luhn check
            InvalidAmountError: Amount is zero or negative
            InsufficientFundsError: Amount exceeds the current balance
        """
        if not is_valid_luhn(order_number):
            raise InvalidOrderNumberError(f"Order number {order_number!r} failed Luhn check")
        if amount_cents <= 0:
            raise InvalidAmountError(f"Withdrawal amount must be positive, got {amount_cents} cents")

        try:
            # No balance can reach past the BIGINT range
            if amount_cents > MAX_CENTS:
                raise InsufficientFundsError(f"Withdrawal of {amount_cents} cents exceeds any balance")
            withdrawal = self.storage.create_withdrawal(user_id, order_number, amount_cents)
        except InsufficientFundsError:
            self.logger.info(
                "Withdrawal rejected",
                extra={"user_id": user_id, "order": order_number, "amount_cents": amount_cents},
            )
            raise

        self.logger.info(
            "Withdrawal accepted",
            extra={"user_id": user_id, "order": order_number, "amount_cents": amount_cents},
        )
        return withdrawal
