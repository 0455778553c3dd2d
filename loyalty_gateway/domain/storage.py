"""Storage capabilities consumed by the domain and the accrual pipeline"""

from typing import List, Optional, Protocol

from loyalty_gateway.domain.models import Order, User, UserBalance, Withdrawal


class LedgerStorage(Protocol):
    """
    Operations used by the accrual pipeline and the balance ledger.

    Implementations must be safe for concurrent use from several threads.
    create_withdrawal must check the balance and insert the row atomically
    at the storage level.
    """

    def get_unprocessed_orders(self) -> List[Order]: ...

    def update_order(self, order: Order) -> None: ...

    def get_user_balance(self, user_id: str) -> UserBalance: ...

    def create_withdrawal(self, user_id: str, order_number: str, amount_cents: int) -> Withdrawal: ...

    def get_withdrawals(self, user_id: str) -> List[Withdrawal]: ...


class OrderStorage(Protocol):
    """Operations used by the order submission path"""

    def create_order(self, user_id: str, number: str) -> Order: ...

    def get_order(self, number: str) -> Optional[Order]: ...

    def get_user_orders(self, user_id: str) -> List[Order]: ...


class UserStorage(Protocol):
    """Operations used by registration and login"""

    def create_user(self, login: str, password_hash: str) -> User: ...

    def get_user_by_login(self, login: str) -> Optional[User]: ...
