"""Order submission rules"""

import logging
from typing import Tuple

from loyalty_gateway.domain.exceptions import InvalidOrderNumberError, OrderAlreadyExistsError, OrderConflictError
from loyalty_gateway.domain.models import Order
from loyalty_gateway.domain.storage import OrderStorage
from loyalty_gateway.utils.luhn import is_valid_luhn

logger = logging.getLogger(__name__)

CREATE_ATTEMPTS = 3


def submit_order(storage: OrderStorage, user_id: str, number: str) -> Tuple[Order, bool]:
    """
    Register an order number for a user.

    First successful creation wins. Resubmitting one's own order is an
    idempotent success; submitting a number owned by someone else is a conflict.

    Returns:
        (order, created) where created is False for a same-owner resubmission

    Raises:
        InvalidOrderNumberError: Number fails the Luhn check
        OrderConflictError: Number belongs to another user, or stays contended
            across every creation attempt
    """
    number = number.strip()
    if not is_valid_luhn(number):
        raise InvalidOrderNumberError(f"Order number {number!r} failed Luhn check")

    existing = None
    for _ in range(CREATE_ATTEMPTS):
        try:
            return storage.create_order(user_id, number), True
        except OrderAlreadyExistsError:
            existing = storage.get_order(number)
        if existing is not None:
            break
        # The competing creation was rolled back in between

    if existing is None:
        logger.warning("Order number contended, giving up", extra={"order": number, "user_id": user_id})
        raise OrderConflictError(f"Order {number} is being uploaded concurrently")

    if existing.user_id != user_id:
        logger.info("Order number conflict", extra={"order": number, "user_id": user_id})
        raise OrderConflictError(f"Order {number} was uploaded by another user")

    return existing, False
