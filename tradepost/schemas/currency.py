from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class CurrencyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    symbol: str
    decimal_places: int
    exchange_rate: Decimal
    is_default: bool


class BalanceOut(BaseModel):
    currency_id: int
    currency_name: str
    symbol: str
    balance: Decimal
    formatted: str
    total_earned: Decimal
    total_spent: Decimal
    last_transaction_at: Optional[datetime] = None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    currency_id: int
    amount: Decimal
    transaction_type: str
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    description: Optional[str] = None
    balance_after: Decimal
    created_at: datetime
