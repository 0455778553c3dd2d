"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from loyalty_gateway.domain.models import Order, OrderStatus, UserBalance, Withdrawal
from loyalty_gateway.utils.money import from_cents


class Credentials(BaseModel):
    """Request body for POST /api/user/register and /api/user/login"""

    login: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=1024)

    @field_validator("login")
    @classmethod
    def login_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("login must not be blank")
        return value


class OrderResponse(BaseModel):
    """Single order in GET /api/user/orders"""

    number: str
    status: OrderStatus
    accrual: Optional[float] = None
    uploaded_at: datetime

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        # Accrual is only meaningful once the order is PROCESSED
        accrual = from_cents(order.accrual_cents) if order.status == OrderStatus.PROCESSED else None
        return cls(number=order.number, status=order.status, accrual=accrual, uploaded_at=order.uploaded_at)


class BalanceResponse(BaseModel):
    """Response for GET /api/user/balance"""

    current: float
    withdrawn: float

    @classmethod
    def from_domain(cls, balance: UserBalance) -> "BalanceResponse":
        return cls(current=from_cents(balance.current_cents), withdrawn=from_cents(balance.withdrawn_cents))


class WithdrawRequest(BaseModel):
    """Request body for POST /api/user/balance/withdraw"""

    order: str = Field(..., min_length=1, description="Order number the points are spent on")
    sum: float = Field(..., gt=0, allow_inf_nan=False, description="Points to withdraw")


class WithdrawalResponse(BaseModel):
    """Single withdrawal in GET /api/user/withdrawals"""

    order: str
    sum: float
    processed_at: datetime

    @classmethod
    def from_domain(cls, withdrawal: Withdrawal) -> "WithdrawalResponse":
        return cls(
            order=withdrawal.order_number,
            sum=from_cents(withdrawal.amount_cents),
            processed_at=withdrawal.processed_at,
        )
