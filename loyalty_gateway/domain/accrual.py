"""Applying accrual service results to orders - core reconciliation rules"""

from dataclasses import replace
from typing import Any, Dict

from loyalty_gateway.domain.exceptions import AccrualServiceError
from loyalty_gateway.domain.models import AccrualStatus, Order, OrderStatus, ScoringResult
from loyalty_gateway.utils.money import to_cents


def parse_scoring_result(payload: Dict[str, Any]) -> ScoringResult:
    """
    Validate a 200 response body from the accrual service.

    Expected shape: {"order": "...", "status": "PROCESSED", "accrual": 500}
    where accrual is only present for PROCESSED orders.

    Raises:
        AccrualServiceError: On missing fields, unknown status or bad accrual
    """
    try:
        number = str(payload["order"])
        status = AccrualStatus(payload["status"])
        accrual = payload.get("accrual")
        accrual_cents = to_cents(accrual) if accrual is not None else None
    except (KeyError, ValueError, TypeError, ArithmeticError) as e:
        raise AccrualServiceError(f"Invalid accrual data: {e}") from e

    if accrual_cents is not None and accrual_cents < 0:
        raise AccrualServiceError(f"Negative accrual for order {number}")

    return ScoringResult(order=number, status=status, accrual_cents=accrual_cents)


def apply_scoring_result(order: Order, result: ScoringResult) -> Order:
    """
    Compute the order state implied by an accrual service result.

    Mapping:
    - REGISTERED / PROCESSING -> PROCESSING, accrual unchanged
    - INVALID                 -> INVALID, accrual 0
    - PROCESSED               -> PROCESSED, accrual from the result

    Terminal orders are returned unchanged: PROCESSED and INVALID are absorbing.
    """
    if result.order != order.number:
        raise AccrualServiceError(
            f"Accrual result for order {result.order} does not match order {order.number}"
        )

    if order.status.is_terminal:
        return order

    if result.status in (AccrualStatus.REGISTERED, AccrualStatus.PROCESSING):
        return replace(order, status=OrderStatus.PROCESSING)

    if result.status == AccrualStatus.INVALID:
        return replace(order, status=OrderStatus.INVALID, accrual_cents=0)

    return replace(order, status=OrderStatus.PROCESSED, accrual_cents=result.accrual_cents or 0)
