"""Balance, withdrawal and withdrawal history endpoints"""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from loyalty_gateway.api.v1.schemas import BalanceResponse, WithdrawRequest, WithdrawalResponse
from loyalty_gateway.api.dependencies import get_current_user_id, get_ledger, get_request_id
from loyalty_gateway.domain.ledger import LedgerGuard
from loyalty_gateway.domain.exceptions import InsufficientFundsError, InvalidAmountError, InvalidOrderNumberError
from loyalty_gateway.infrastructure.observability.metrics import record_withdrawal
from loyalty_gateway.utils.money import to_cents

router = APIRouter()


@router.get("/balance", response_model=BalanceResponse)
def get_balance(
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerGuard = Depends(get_ledger),
):
    """Current spendable points and the total withdrawn so far"""
    return BalanceResponse.from_domain(ledger.get_balance(user_id))


@router.post("/balance/withdraw")
def withdraw(
    request_body: WithdrawRequest,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerGuard = Depends(get_ledger),
):
    """
    Spend points against an order number.

    Flow:
    1. Validate order number (Luhn) and amount
    2. Check balance and insert withdrawal atomically in storage
    3. 402 if the balance does not cover the amount
    """
    try:
        amount_cents = to_cents(request_body.sum)
        ledger.withdraw(user_id, request_body.order, amount_cents)
    except (InvalidOrderNumberError, InvalidAmountError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except InsufficientFundsError as e:
        record_withdrawal(False, amount_cents)
        logging.info(f"Withdrawal declined: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail="Insufficient points")

    record_withdrawal(True, amount_cents)
    return Response(status_code=status.HTTP_200_OK)


@router.get("/withdrawals", response_model=List[WithdrawalResponse], responses={204: {"description": "No withdrawals"}})
def list_withdrawals(
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerGuard = Depends(get_ledger),
):
    """List the user's withdrawals, newest first"""
    withdrawals = ledger.get_withdrawals(user_id)
    if not withdrawals:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [WithdrawalResponse.from_domain(w) for w in withdrawals]
