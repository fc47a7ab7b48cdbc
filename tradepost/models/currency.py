from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    String, Integer, DateTime, Text, Boolean, Numeric, ForeignKey,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from tradepost.db.base import Base

# Storage precision of every balance / amount column. Currencies round to
# their own decimal_places (0-4) before anything is written.
AMOUNT = Numeric(15, 4)


class Currency(Base):
    __tablename__ = "currencies"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    symbol: Mapped[str] = mapped_column(String(10), nullable=False, default="")

    decimal_places: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    exchange_rate: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False, default=Decimal("1"))

    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")  # active / inactive
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("decimal_places >= 0 AND decimal_places <= 4", name="valid_decimal_places"),
    )


class CurrencyBalance(Base):
    """Cached roll-up of a user's transaction log for one currency."""

    __tablename__ = "user_currencies"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    currency_id: Mapped[int] = mapped_column(ForeignKey("currencies.id"), index=True, nullable=False)

    balance: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=Decimal("0"))
    total_earned: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=Decimal("0"))
    total_spent: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=Decimal("0"))

    last_transaction_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint("user_id", "currency_id", name="user_currency_unique"),
        CheckConstraint("balance >= 0", name="non_negative_balance"),
    )


class CurrencyTransaction(Base):
    """Append-only log row. One per balance mutation."""

    __tablename__ = "currency_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    currency_id: Mapped[int] = mapped_column(ForeignKey("currencies.id"), index=True, nullable=False)

    amount: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)  # signed
    transaction_type: Mapped[str] = mapped_column(String(16), index=True, nullable=False)  # earned / spent / traded / awarded
    reference_type: Mapped[str | None] = mapped_column(String(16), nullable=True)  # trade / transfer / award / admin
    reference_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    balance_after: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False, default=datetime.utcnow)
