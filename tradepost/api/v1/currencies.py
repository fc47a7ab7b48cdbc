from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tradepost.core.deps import get_db, get_current_user
from tradepost.models.user import User
from tradepost.schemas.currency import CurrencyOut, BalanceOut, TransactionOut
from tradepost.services.currency_ledger import CurrencyLedger

router = APIRouter()


@router.get("/currencies", response_model=list[CurrencyOut])
def list_currencies(db: Session = Depends(get_db)):
    return CurrencyLedger(db).list_currencies()


@router.get("/currencies/balances", response_model=list[BalanceOut])
def my_balances(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    ledger = CurrencyLedger(db)
    return [
        BalanceOut(
            currency_id=currency.id,
            currency_name=currency.name,
            symbol=currency.symbol,
            balance=row.balance,
            formatted=ledger.format_amount(row.balance, currency.id),
            total_earned=row.total_earned,
            total_spent=row.total_spent,
            last_transaction_at=row.last_transaction_at,
        )
        for row, currency in ledger.get_balances(current_user.id)
    ]


@router.get("/currencies/transactions", response_model=list[TransactionOut])
def my_transactions(
    currency_id: Optional[int] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CurrencyLedger(db).get_transactions(
        current_user.id, currency_id=currency_id, limit=limit, offset=skip
    )
