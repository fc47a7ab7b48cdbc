from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserItemOut(BaseModel):
    item_id: int
    name: str
    item_type: str
    rarity: str
    quantity: int
    available: int
    is_tradeable: bool


class UniqueTokenOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: int
    token_uid: str
    owner_id: Optional[int] = None
    original_owner_id: int
    rarity: str
    upgrade_level: int
    is_tradeable: bool
    is_reserved: bool
    reserved_for_trade: Optional[int] = None
    minted_at: datetime


class TokenTransferOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    token_id: int
    from_user_id: Optional[int] = None
    to_user_id: int
    transfer_type: str
    trade_id: Optional[int] = None
    created_at: datetime
