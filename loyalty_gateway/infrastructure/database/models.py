"""SQLAlchemy ORM models for orders, withdrawals and ledger accounts"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, BigInteger, DateTime, Integer, Text, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LoyaltyAccount(Base):
    """One row per user owning orders; locked while admitting a withdrawal"""

    __tablename__ = "loyalty_account"

    user_id = Column(Text, primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class OrderRecord(Base):
    """Uploaded order and its accrual state"""

    __tablename__ = "loyalty_order"
    __table_args__ = (Index("ix_loyalty_order_status", "status"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    number = Column(Text, nullable=False, unique=True)
    status = Column(Text, nullable=False, default="NEW")
    accrual_cents = Column(BigInteger, nullable=False, default=0)
    # Python-side default keeps sub-second ordering on SQLite as well
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class WithdrawalRecord(Base):
    """Immutable withdrawal row"""

    __tablename__ = "loyalty_withdrawal"

    # SQLite only autoincrements INTEGER PRIMARY KEY
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False, index=True)
    order_number = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class UserRecord(Base):
    """Registered user with a scrypt password hash"""

    __tablename__ = "loyalty_user"

    id = Column(Text, primary_key=True)
    login = Column(Text, nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
