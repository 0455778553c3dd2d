"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    """Order lifecycle: NEW -> PROCESSING -> PROCESSED | INVALID"""

    NEW = "NEW"
    PROCESSING = "PROCESSING"
    INVALID = "INVALID"
    PROCESSED = "PROCESSED"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.PROCESSED, OrderStatus.INVALID)


class AccrualStatus(str, Enum):
    """Order status as reported by the accrual service"""

    REGISTERED = "REGISTERED"
    PROCESSING = "PROCESSING"
    INVALID = "INVALID"
    PROCESSED = "PROCESSED"


UNPROCESSED_STATUSES = (OrderStatus.NEW, OrderStatus.PROCESSING)


@dataclass(frozen=True)
class Order:
    """Loyalty order uploaded by a user"""

    id: uuid.UUID
    user_id: str
    number: str
    status: OrderStatus
    accrual_cents: int
    uploaded_at: datetime


@dataclass(frozen=True)
class ScoringResult:
    """Accrual service response for one order"""

    order: str
    status: AccrualStatus
    accrual_cents: Optional[int] = None


@dataclass(frozen=True)
class Withdrawal:
    """Points spent against an order number"""

    user_id: str
    order_number: str
    amount_cents: int
    processed_at: datetime


@dataclass(frozen=True)
class UserBalance:
    """Balance derived from the ledger, never stored"""

    current_cents: int
    withdrawn_cents: int


@dataclass(frozen=True)
class User:
    """Registered user; id is the owner key of orders and withdrawals"""

    id: str
    login: str
    password_hash: str
