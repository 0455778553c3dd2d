"""Pytest fixtures for testing"""

import os

# Point the app at SQLite and keep the background watcher off before app modules load
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("ACCRUAL_WATCHER_ENABLED", "false")

import asyncio
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from loyalty_gateway.api.main import create_app
from loyalty_gateway.api.dependencies import get_storage
from loyalty_gateway.accrual.cooldown import RetryPolicy
from loyalty_gateway.domain.exceptions import (
    InsufficientFundsError,
    LoginAlreadyExistsError,
    OrderAlreadyExistsError,
    StorageError,
)
from loyalty_gateway.domain.models import Order, OrderStatus, User, UserBalance, Withdrawal, UNPROCESSED_STATUSES
from loyalty_gateway.infrastructure.database.models import Base
from loyalty_gateway.infrastructure.database.session import build_engine
from loyalty_gateway.infrastructure.database.storage import DatabaseStorage


class InMemoryStorage:
    """Thread-safe stand-in for DatabaseStorage with failure injection"""

    def __init__(self):
        self._lock = threading.Lock()
        self.orders: Dict[str, Order] = {}
        self.withdrawals: List[Withdrawal] = []
        self.updates: List[Order] = []
        self.users: Dict[str, User] = {}
        self.list_calls = 0
        self.fail_reads = 0
        self.fail_writes = 0

    def add_order(
        self,
        user_id: str,
        number: str,
        status: OrderStatus = OrderStatus.NEW,
        accrual_cents: int = 0,
    ) -> Order:
        order = Order(
            id=uuid.uuid4(),
            user_id=user_id,
            number=number,
            status=status,
            accrual_cents=accrual_cents,
            uploaded_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self.orders[number] = order
        return order

    # LedgerStorage

    def get_unprocessed_orders(self) -> List[Order]:
        with self._lock:
            self.list_calls += 1
            if self.fail_reads > 0:
                self.fail_reads -= 1
                raise StorageError("connection refused")
            return [o for o in self.orders.values() if o.status in UNPROCESSED_STATUSES]

    def update_order(self, order: Order) -> None:
        with self._lock:
            if self.fail_writes > 0:
                self.fail_writes -= 1
                raise StorageError("write failed")
            current = self.orders[order.number]
            if current.status.is_terminal:
                return
            self.orders[order.number] = replace(current, status=order.status, accrual_cents=order.accrual_cents)
            self.updates.append(order)

    def _balance(self, user_id: str) -> UserBalance:
        accrued = sum(
            o.accrual_cents for o in self.orders.values()
            if o.user_id == user_id and o.status == OrderStatus.PROCESSED
        )
        withdrawn = sum(w.amount_cents for w in self.withdrawals if w.user_id == user_id)
        return UserBalance(current_cents=accrued - withdrawn, withdrawn_cents=withdrawn)

    def get_user_balance(self, user_id: str) -> UserBalance:
        with self._lock:
            return self._balance(user_id)

    def create_withdrawal(self, user_id: str, order_number: str, amount_cents: int) -> Withdrawal:
        with self._lock:
            if self._balance(user_id).current_cents < amount_cents:
                raise InsufficientFundsError("not enough points")
            withdrawal = Withdrawal(
                user_id=user_id,
                order_number=order_number,
                amount_cents=amount_cents,
                processed_at=datetime.now(timezone.utc),
            )
            self.withdrawals.append(withdrawal)
            return withdrawal

    def get_withdrawals(self, user_id: str) -> List[Withdrawal]:
        with self._lock:
            return [w for w in reversed(self.withdrawals) if w.user_id == user_id]

    # OrderStorage

    def create_order(self, user_id: str, number: str) -> Order:
        with self._lock:
            if number in self.orders:
                raise OrderAlreadyExistsError(number)
        return self.add_order(user_id, number)

    def get_order(self, number: str) -> Optional[Order]:
        with self._lock:
            return self.orders.get(number)

    def get_user_orders(self, user_id: str) -> List[Order]:
        with self._lock:
            return [o for o in self.orders.values() if o.user_id == user_id]

    # UserStorage

    def create_user(self, login: str, password_hash: str) -> User:
        with self._lock:
            if login in self.users:
                raise LoginAlreadyExistsError(login)
            user = User(id=str(uuid.uuid4()), login=login, password_hash=password_hash)
            self.users[login] = user
            return user

    def get_user_by_login(self, login: str) -> Optional[User]:
        with self._lock:
            return self.users.get(login)


class FakeClock:
    """Monotonic clock whose sleep advances time instantly"""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        # Yield so other tasks progress between fake ticks
        await asyncio.sleep(0)


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def retry_policy(fake_clock: FakeClock) -> RetryPolicy:
    return RetryPolicy(interval=2.0, default_cooldown=10.0, max_cooldown=60.0, clock=fake_clock, sleep=fake_clock.sleep)


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    """File-backed SQLite so several connections can race"""
    engine = build_engine(f"sqlite:///{tmp_path / 'loyalty.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db_storage(engine: Engine) -> DatabaseStorage:
    """Create test database and storage"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return DatabaseStorage(TestingSessionLocal)


@pytest.fixture
def client(db_storage: DatabaseStorage) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()
    app.dependency_overrides[get_storage] = lambda: db_storage
    return TestClient(app)
