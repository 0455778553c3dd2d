"""Data access layer for loyalty orders and the withdrawal ledger"""

import uuid
from typing import List, Optional
from sqlalchemy import BigInteger, DateTime, Text, func, insert, literal, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from loyalty_gateway.infrastructure.database.models import LoyaltyAccount, OrderRecord, UserRecord, WithdrawalRecord, utcnow
from loyalty_gateway.domain.models import Order, OrderStatus, User, UserBalance, Withdrawal, UNPROCESSED_STATUSES
from loyalty_gateway.domain.exceptions import LoginAlreadyExistsError, OrderAlreadyExistsError


def _to_order(record: OrderRecord) -> Order:
    return Order(
        id=record.id,
        user_id=record.user_id,
        number=record.number,
        status=OrderStatus(record.status),
        accrual_cents=record.accrual_cents,
        uploaded_at=record.uploaded_at,
    )


def _to_withdrawal(record: WithdrawalRecord) -> Withdrawal:
    return Withdrawal(
        user_id=record.user_id,
        order_number=record.order_number,
        amount_cents=record.amount_cents,
        processed_at=record.processed_at,
    )


def _to_user(record: UserRecord) -> User:
    return User(id=record.id, login=record.login, password_hash=record.password_hash)


class UserRepository:
    """Repository for registered users"""

    def __init__(self, db: Session):
        self.db = db

    def create_user(self, login: str, password_hash: str) -> User:
        """
        Insert a user. The unique login constraint decides who wins.

        Raises:
            LoginAlreadyExistsError: Login already registered
        """
        db_user = UserRecord(id=str(uuid.uuid4()), login=login, password_hash=password_hash)
        self.db.add(db_user)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise LoginAlreadyExistsError(f"Login {login!r} is already taken") from e
        return _to_user(db_user)

    def get_by_login(self, login: str) -> Optional[User]:
        record = self.db.query(UserRecord).filter(UserRecord.login == login).first()
        return _to_user(record) if record else None


class OrderRepository:
    """Repository for uploaded orders"""

    def __init__(self, db: Session):
        self.db = db

    def create_order(self, user_id: str, number: str) -> Order:
        """
        Insert a NEW order. The unique number constraint decides who wins.

        Raises:
            OrderAlreadyExistsError: Number already registered (by anyone)
        """
        db_order = OrderRecord(
            id=uuid.uuid4(),
            user_id=user_id,
            number=number,
            status=OrderStatus.NEW.value,
            accrual_cents=0,
            uploaded_at=utcnow(),
        )
        self.db.add(db_order)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise OrderAlreadyExistsError(f"Order {number} already exists") from e
        return _to_order(db_order)

    def get_order_by_number(self, number: str) -> Optional[Order]:
        record = self.db.query(OrderRecord).filter(OrderRecord.number == number).first()
        return _to_order(record) if record else None

    def get_orders_by_user(self, user_id: str) -> List[Order]:
        """Fetch a user's orders, oldest upload first"""
        records = (
            self.db.query(OrderRecord)
            .filter(OrderRecord.user_id == user_id)
            .order_by(OrderRecord.uploaded_at.asc())
            .all()
        )
        return [_to_order(r) for r in records]

    def get_unprocessed(self) -> List[Order]:
        """Orders still waiting for a final accrual (NEW or PROCESSING)"""
        records = (
            self.db.query(OrderRecord)
            .filter(OrderRecord.status.in_([s.value for s in UNPROCESSED_STATUSES]))
            .order_by(OrderRecord.uploaded_at.asc())
            .all()
        )
        return [_to_order(r) for r in records]

    def update_accrual(self, order: Order) -> bool:
        """
        Write status and accrual together in one statement.

        Only non-terminal rows match, so a PROCESSED or INVALID order is never
        regressed. Returns False when nothing was updated.
        """
        result = self.db.execute(
            update(OrderRecord)
            .where(
                OrderRecord.id == order.id,
                OrderRecord.status.in_([s.value for s in UNPROCESSED_STATUSES]),
            )
            .values(status=order.status.value, accrual_cents=order.accrual_cents)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class AccountRepository:
    """Repository for per-user ledger accounts"""

    def __init__(self, db: Session):
        self.db = db

    def ensure_account(self, user_id: str) -> None:
        """Create the user's account row if missing; concurrent creators are fine"""
        if self.db.get(LoyaltyAccount, user_id) is not None:
            return
        self.db.add(LoyaltyAccount(user_id=user_id))
        try:
            self.db.commit()
        except IntegrityError:
            # Someone else created it first
            self.db.rollback()

    @staticmethod
    def lock_statement(user_id: str):
        return select(LoyaltyAccount.user_id).where(LoyaltyAccount.user_id == user_id).with_for_update()

    def lock_account(self, user_id: str) -> bool:
        """Take a row lock on the user's account until the transaction ends"""
        return self.db.execute(self.lock_statement(user_id)).first() is not None


class LedgerRepository:
    """Repository for balance reads and withdrawals"""

    def __init__(self, db: Session):
        self.db = db

    def _accrued(self, user_id: str):
        return (
            select(func.coalesce(func.sum(OrderRecord.accrual_cents), 0))
            .where(
                OrderRecord.user_id == user_id,
                OrderRecord.status == OrderStatus.PROCESSED.value,
            )
            .scalar_subquery()
        )

    def _withdrawn(self, user_id: str):
        return (
            select(func.coalesce(func.sum(WithdrawalRecord.amount_cents), 0))
            .where(WithdrawalRecord.user_id == user_id)
            .scalar_subquery()
        )

    def get_balance(self, user_id: str) -> UserBalance:
        accrued, withdrawn = self.db.execute(
            select(self._accrued(user_id), self._withdrawn(user_id))
        ).one()
        return UserBalance(current_cents=int(accrued) - int(withdrawn), withdrawn_cents=int(withdrawn))

    def insert_withdrawal_if_covered(self, user_id: str, order_number: str, amount_cents: int) -> Optional[Withdrawal]:
        """
        Insert a withdrawal only if the balance covers it, in one statement:

            INSERT INTO loyalty_withdrawal (...)
            SELECT ... WHERE accrued - withdrawn >= amount

        The balance is evaluated by the database while it holds the write,
        so two racing inserts cannot both see the same funds. Returns None
        when the balance is insufficient.
        """
        processed_at = utcnow()
        covered = select(
            literal(user_id, Text()),
            literal(order_number, Text()),
            literal(amount_cents, BigInteger()),
            literal(processed_at, DateTime(timezone=True)),
        ).where(self._accrued(user_id) - self._withdrawn(user_id) >= amount_cents)

        result = self.db.execute(
            insert(WithdrawalRecord).from_select(
                ["user_id", "order_number", "amount_cents", "processed_at"],
                covered,
            )
        )
        if result.rowcount != 1:
            return None

        return Withdrawal(
            user_id=user_id,
            order_number=order_number,
            amount_cents=amount_cents,
            processed_at=processed_at,
        )

    def get_withdrawals(self, user_id: str) -> List[Withdrawal]:
        """Fetch a user's withdrawals, newest first"""
        records = (
            self.db.query(WithdrawalRecord)
            .filter(WithdrawalRecord.user_id == user_id)
            .order_by(WithdrawalRecord.processed_at.desc(), WithdrawalRecord.id.desc())
            .all()
        )
        return [_to_withdrawal(r) for r in records]
