"""SQL-backed implementation of the storage capabilities"""

from typing import Callable, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from loyalty_gateway.infrastructure.database.repositories import AccountRepository, LedgerRepository, OrderRepository, UserRepository
from loyalty_gateway.domain.models import Order, User, UserBalance, Withdrawal
from loyalty_gateway.domain.exceptions import InsufficientFundsError, StorageError


class DatabaseStorage:
    """
    LedgerStorage, OrderStorage and UserStorage over SQLAlchemy.

    Every call opens its own session from the pool, so one instance can be
    shared by the accrual pipeline threads and all request handlers.
    SQLAlchemy failures surface as StorageError.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get_unprocessed_orders(self) -> List[Order]:
        try:
            with self.session_factory() as db:
                return OrderRepository(db).get_unprocessed()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list unprocessed orders: {e}") from e

    def update_order(self, order: Order) -> None:
        try:
            with self.session_factory() as db:
                OrderRepository(db).update_accrual(order)
                db.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update order {order.number}: {e}") from e

    def get_user_balance(self, user_id: str) -> UserBalance:
        try:
            with self.session_factory() as db:
                return LedgerRepository(db).get_balance(user_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to compute balance: {e}") from e

    def create_withdrawal(self, user_id: str, order_number: str, amount_cents: int) -> Withdrawal:
        """
        Admit or reject a withdrawal in a single transaction.

        1. Lock the user's account row (FOR UPDATE on PostgreSQL)
        2. Insert the withdrawal only if accrued - withdrawn covers it
        3. Commit, or roll back and raise InsufficientFundsError

        Raises:
            InsufficientFundsError: Balance does not cover the amount
            StorageError: On database failure
        """
        try:
            with self.session_factory() as db:
                if not AccountRepository(db).lock_account(user_id):
                    raise InsufficientFundsError(f"User {user_id} has no accrued points")

                withdrawal = LedgerRepository(db).insert_withdrawal_if_covered(user_id, order_number, amount_cents)
                if withdrawal is None:
                    db.rollback()
                    raise InsufficientFundsError(
                        f"Balance does not cover withdrawal of {amount_cents} cents"
                    )

                db.commit()
                return withdrawal
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create withdrawal: {e}") from e

    def get_withdrawals(self, user_id: str) -> List[Withdrawal]:
        try:
            with self.session_factory() as db:
                return LedgerRepository(db).get_withdrawals(user_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list withdrawals: {e}") from e

    def create_order(self, user_id: str, number: str) -> Order:
        try:
            with self.session_factory() as db:
                AccountRepository(db).ensure_account(user_id)
                order = OrderRepository(db).create_order(user_id, number)
                db.commit()
                return order
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create order {number}: {e}") from e

    def get_order(self, number: str) -> Optional[Order]:
        try:
            with self.session_factory() as db:
                return OrderRepository(db).get_order_by_number(number)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch order {number}: {e}") from e

    def get_user_orders(self, user_id: str) -> List[Order]:
        try:
            with self.session_factory() as db:
                return OrderRepository(db).get_orders_by_user(user_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list orders: {e}") from e

    def create_user(self, login: str, password_hash: str) -> User:
        """Create the user together with their ledger account"""
        try:
            with self.session_factory() as db:
                user = UserRepository(db).create_user(login, password_hash)
                AccountRepository(db).ensure_account(user.id)
                db.commit()
                return user
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create user: {e}") from e

    def get_user_by_login(self, login: str) -> Optional[User]:
        try:
            with self.session_factory() as db:
                return UserRepository(db).get_by_login(login)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch user: {e}") from e
