"""
Currency Ledger
Per-user, per-currency balances plus the append-only transaction log.

The ledger never commits. Every mutation is flushed into the caller's
session so that it commits or rolls back together with whatever else the
caller is doing (a trade settlement, an admin adjustment, ...).
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from tradepost.core.errors import (
    CurrencyExists,
    CurrencyNotFound,
    InsufficientFunds,
    InvalidAmount,
    SameUser,
)
from tradepost.models.currency import Currency, CurrencyBalance, CurrencyTransaction

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
MAX_DECIMAL_PLACES = 4


def to_decimal(value) -> Decimal:
    """Coerce int/str/float/Decimal to a finite Decimal without binary float noise."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidAmount(f"Invalid amount: {value!r}")
    # NaN and Infinity never compare or round cleanly
    if not result.is_finite():
        raise InvalidAmount(f"Invalid amount: {value!r}", details={"amount": str(value)})
    return result


def quantize(amount, decimal_places: int) -> Decimal:
    """Round half-up to the given number of decimal places."""
    exponent = Decimal(1).scaleb(-decimal_places)
    return to_decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)


@dataclass
class LedgerDrift:
    user_id: int
    currency_id: int
    balance: Decimal
    log_total: Decimal

    @property
    def drift(self) -> Decimal:
        return self.balance - self.log_total

    @property
    def is_consistent(self) -> bool:
        return self.drift == ZERO


class CurrencyLedger:
    """Service for currencies, balances and the transaction log."""

    def __init__(self, db: Session):
        self.db = db

    # -----------------------------
    # Currency registry
    # -----------------------------

    def create_currency(
        self,
        name: str,
        slug: str,
        symbol: str = "",
        decimal_places: int = 0,
        exchange_rate=Decimal("1"),
        is_default: bool = False,
    ) -> Currency:
        """
        Create a new currency.

        Args:
            name: Display name
            slug: Unique machine name
            symbol: Short symbol used when formatting amounts
            decimal_places: Precision, clamped to 0-4
            exchange_rate: Units of this currency per base unit
            is_default: Make this the default currency (unsets any other)

        Returns:
            Created Currency object

        Raises:
            CurrencyExists: If the slug is taken
        """
        slug = slug.strip().lower()
        if self.db.scalar(select(Currency).where(Currency.slug == slug)):
            raise CurrencyExists(details={"slug": slug})

        rate = to_decimal(exchange_rate)
        if rate <= ZERO:
            raise InvalidAmount("Exchange rate must be positive")

        if is_default:
            for current in self.db.scalars(select(Currency).where(Currency.is_default.is_(True))):
                current.is_default = False

        currency = Currency(
            name=name.strip(),
            slug=slug,
            symbol=symbol.strip(),
            decimal_places=max(0, min(MAX_DECIMAL_PLACES, int(decimal_places))),
            exchange_rate=rate,
            is_default=is_default,
            status="active",
        )
        self.db.add(currency)
        self.db.flush()
        return currency

    def get_currency(self, currency_id: int) -> Optional[Currency]:
        return self.db.get(Currency, currency_id)

    def require_currency(self, currency_id: int) -> Currency:
        currency = self.db.get(Currency, currency_id)
        if currency is None or currency.status != "active":
            raise CurrencyNotFound(details={"currency_id": currency_id})
        return currency

    def list_currencies(self, active_only: bool = True) -> List[Currency]:
        stmt = select(Currency)
        if active_only:
            stmt = stmt.where(Currency.status == "active")
        stmt = stmt.order_by(Currency.is_default.desc(), Currency.name.asc())
        return list(self.db.scalars(stmt).all())

    def get_default_currency(self) -> Optional[Currency]:
        return self.db.scalar(
            select(Currency).where(Currency.is_default.is_(True), Currency.status == "active")
        )

    # -----------------------------
    # Balances
    # -----------------------------

    def _balance_row(self, user_id: int, currency_id: int, lock: bool = False) -> Optional[CurrencyBalance]:
        stmt = select(CurrencyBalance).where(
            CurrencyBalance.user_id == user_id,
            CurrencyBalance.currency_id == currency_id,
        )
        if lock:
            stmt = stmt.with_for_update()
        return self.db.scalar(stmt)

    def get_balance(self, user_id: int, currency_id: int) -> Decimal:
        """Current balance, zero if the user never held this currency."""
        row = self._balance_row(user_id, currency_id)
        return row.balance if row is not None else ZERO

    def get_balances(self, user_id: int) -> List[Tuple[CurrencyBalance, Currency]]:
        stmt = (
            select(CurrencyBalance, Currency)
            .join(Currency, CurrencyBalance.currency_id == Currency.id)
            .where(CurrencyBalance.user_id == user_id, Currency.status == "active")
            .order_by(Currency.is_default.desc(), Currency.name.asc())
        )
        return [(row, currency) for row, currency in self.db.execute(stmt).all()]

    def normalize_amount(self, currency_id: int, amount) -> Decimal:
        """
        Round an amount to the currency's precision and validate it.

        Raises:
            CurrencyNotFound: If the currency is unknown or inactive
            InvalidAmount: If the rounded amount is not strictly positive
        """
        currency = self.require_currency(currency_id)
        value = quantize(amount, currency.decimal_places)
        if value <= ZERO:
            raise InvalidAmount(details={"currency_id": currency_id, "amount": str(amount)})
        return value

    def credit(
        self,
        user_id: int,
        currency_id: int,
        amount,
        transaction_type: str = "earned",
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> CurrencyTransaction:
        """
        Add currency to a user's balance and append a log row.

        Returns:
            The CurrencyTransaction written

        Raises:
            InvalidAmount: If amount is zero or negative after rounding
            CurrencyNotFound: If the currency is unknown or inactive
        """
        value = self.normalize_amount(currency_id, amount)
        now = datetime.utcnow()

        row = self._balance_row(user_id, currency_id, lock=True)
        if row is None:
            row = CurrencyBalance(
                user_id=user_id,
                currency_id=currency_id,
                balance=ZERO,
                total_earned=ZERO,
                total_spent=ZERO,
            )
            self.db.add(row)

        row.balance = row.balance + value
        row.total_earned = row.total_earned + value
        row.last_transaction_at = now

        tx = CurrencyTransaction(
            user_id=user_id,
            currency_id=currency_id,
            amount=value,
            transaction_type=transaction_type,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
            balance_after=row.balance,
            created_at=now,
        )
        self.db.add(tx)
        self.db.flush()

        logger.debug("credit user=%s currency=%s amount=%s balance=%s", user_id, currency_id, value, row.balance)
        return tx

    def debit(
        self,
        user_id: int,
        currency_id: int,
        amount,
        transaction_type: str = "spent",
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> CurrencyTransaction:
        """
        Remove currency from a user's balance and append a log row.

        Fails closed: nothing is written unless the balance covers the amount.

        Raises:
            InvalidAmount: If amount is zero or negative after rounding
            CurrencyNotFound: If the currency is unknown or inactive
            InsufficientFunds: If balance < amount
        """
        value = self.normalize_amount(currency_id, amount)

        row = self._balance_row(user_id, currency_id, lock=True)
        balance = row.balance if row is not None else ZERO
        if row is None or balance < value:
            raise InsufficientFunds(
                details={
                    "user_id": user_id,
                    "currency_id": currency_id,
                    "balance": str(balance),
                    "amount": str(value),
                }
            )

        now = datetime.utcnow()
        row.balance = balance - value
        row.total_spent = row.total_spent + value
        row.last_transaction_at = now

        tx = CurrencyTransaction(
            user_id=user_id,
            currency_id=currency_id,
            amount=-value,
            transaction_type=transaction_type,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
            balance_after=row.balance,
            created_at=now,
        )
        self.db.add(tx)
        self.db.flush()

        logger.debug("debit user=%s currency=%s amount=%s balance=%s", user_id, currency_id, value, row.balance)
        return tx

    def transfer(
        self,
        from_user_id: int,
        to_user_id: int,
        currency_id: int,
        amount,
        reference_type: str = "transfer",
        reference_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Tuple[CurrencyTransaction, CurrencyTransaction]:
        """
        Move currency between two users: debit then credit.

        Both legs are validated before either is written, so a failure leaves
        no partial effect; the caller's commit/rollback decides persistence.

        Returns:
            (debit transaction, credit transaction)
        """
        if from_user_id == to_user_id:
            raise SameUser(details={"user_id": from_user_id})

        value = self.normalize_amount(currency_id, amount)

        # Lock both rows in a fixed order so opposite transfers cannot deadlock
        for uid in sorted((from_user_id, to_user_id)):
            self._balance_row(uid, currency_id, lock=True)

        debit_tx = self.debit(
            from_user_id, currency_id, value,
            transaction_type="traded",
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
        )
        credit_tx = self.credit(
            to_user_id, currency_id, value,
            transaction_type="traded",
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
        )
        return debit_tx, credit_tx

    # -----------------------------
    # Queries / helpers
    # -----------------------------

    def get_transactions(
        self,
        user_id: int,
        currency_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[CurrencyTransaction]:
        stmt = select(CurrencyTransaction).where(CurrencyTransaction.user_id == user_id)
        if currency_id is not None:
            stmt = stmt.where(CurrencyTransaction.currency_id == currency_id)
        stmt = (
            stmt.order_by(CurrencyTransaction.created_at.desc(), CurrencyTransaction.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.scalars(stmt).all())

    def format_amount(self, amount, currency_id: int) -> str:
        currency = self.get_currency(currency_id)
        if currency is None:
            return str(amount)
        value = quantize(amount, currency.decimal_places)
        formatted = f"{value:,.{currency.decimal_places}f}"
        return f"{currency.symbol} {formatted}".strip()

    def convert(self, amount, from_currency_id: int, to_currency_id: int) -> Decimal:
        """Convert through the base unit using exchange rates."""
        if from_currency_id == to_currency_id:
            return to_decimal(amount)

        source = self.require_currency(from_currency_id)
        target = self.require_currency(to_currency_id)

        base_amount = to_decimal(amount) / source.exchange_rate
        return quantize(base_amount * target.exchange_rate, target.decimal_places)

    def reconcile(self, user_id: int, currency_id: int) -> LedgerDrift:
        """Compare the cached balance against the sum of the transaction log."""
        log_total = self.db.scalar(
            select(func.coalesce(func.sum(CurrencyTransaction.amount), 0)).where(
                CurrencyTransaction.user_id == user_id,
                CurrencyTransaction.currency_id == currency_id,
            )
        )
        return LedgerDrift(
            user_id=user_id,
            currency_id=currency_id,
            balance=self.get_balance(user_id, currency_id),
            log_total=quantize(log_total, MAX_DECIMAL_PLACES),
        )
