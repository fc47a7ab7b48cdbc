from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tradepost.core.deps import get_db, get_current_user
from tradepost.models.user import User
from tradepost.schemas.inventory import UserItemOut, UniqueTokenOut, TokenTransferOut
from tradepost.services.item_ledger import ItemLedger
from tradepost.services.token_registry import TokenRegistry

router = APIRouter()


@router.get("/inventory/items", response_model=list[UserItemOut])
def my_items(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    ledger = ItemLedger(db)
    return [
        UserItemOut(
            item_id=item.id,
            name=item.name,
            item_type=item.item_type,
            rarity=item.rarity,
            quantity=row.quantity,
            available=ledger.available(current_user.id, item.id),
            is_tradeable=item.is_tradeable,
        )
        for row, item in ledger.list_user_items(current_user.id)
    ]


@router.get("/inventory/tokens", response_model=list[UniqueTokenOut])
def my_tokens(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return TokenRegistry(db).list_owned(current_user.id)


@router.get("/inventory/tokens/{token_id}/history", response_model=list[TokenTransferOut])
def token_history(
    token_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registry = TokenRegistry(db)
    token = registry.get(token_id)
    if token.owner_id != current_user.id and token.original_owner_id != current_user.id:
        raise HTTPException(status_code=404, detail="Token not found")
    return registry.history(token_id)
