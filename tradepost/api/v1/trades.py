"""
Trade API Endpoints

Every route acts as the authenticated user. Engine errors are rendered by
the TradepostError handler installed in tradepost.main.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from tradepost.core.deps import get_current_user, get_trade_engine
from tradepost.models.user import User
from tradepost.schemas.trade import TradeCreate, TradeDecline, TradeOut, TradeStatistics, TradeStatus
from tradepost.services.trade_engine import TradeEngine

router = APIRouter()


@router.post("/trades", response_model=TradeOut, status_code=201)
def create_trade(
    payload: TradeCreate,
    current_user: User = Depends(get_current_user),
    engine: TradeEngine = Depends(get_trade_engine),
):
    """
    Offer a trade to another user.

    - **recipient_id**: User the offer is sent to
    - **offer**: Items, tokens and currencies you give
    - **request**: Items, tokens and currencies you want back
    - **message**: Optional note (markup is stripped)
    """
    return engine.create_trade(
        requester_id=current_user.id,
        recipient_id=payload.recipient_id,
        offer=payload.offer,
        request=payload.request,
        message=payload.message,
    )


@router.get("/trades", response_model=list[TradeOut])
def list_trades(
    status: Optional[TradeStatus] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    engine: TradeEngine = Depends(get_trade_engine),
):
    return engine.list_user_trades(current_user.id, status=status, limit=limit, offset=skip)


@router.get("/trades/stats", response_model=TradeStatistics)
def trade_stats(
    current_user: User = Depends(get_current_user),
    engine: TradeEngine = Depends(get_trade_engine),
):
    return engine.trade_statistics(current_user.id)


@router.get("/trades/{trade_id}", response_model=TradeOut)
def get_trade(
    trade_id: int,
    current_user: User = Depends(get_current_user),
    engine: TradeEngine = Depends(get_trade_engine),
):
    return engine.get_trade(trade_id, user_id=current_user.id)


@router.post("/trades/{trade_id}/accept", response_model=TradeOut)
def accept_trade(
    trade_id: int,
    current_user: User = Depends(get_current_user),
    engine: TradeEngine = Depends(get_trade_engine),
):
    return engine.accept_trade(trade_id, current_user.id)


@router.post("/trades/{trade_id}/decline", response_model=TradeOut)
def decline_trade(
    trade_id: int,
    payload: Optional[TradeDecline] = None,
    current_user: User = Depends(get_current_user),
    engine: TradeEngine = Depends(get_trade_engine),
):
    reason = payload.reason if payload else ""
    return engine.decline_trade(trade_id, current_user.id, reason=reason)


@router.post("/trades/{trade_id}/cancel", response_model=TradeOut)
def cancel_trade(
    trade_id: int,
    current_user: User = Depends(get_current_user),
    engine: TradeEngine = Depends(get_trade_engine),
):
    return engine.cancel_trade(trade_id, current_user.id)
