from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator

from tradepost.schemas.bundle import AssetBundle

TradeStatus = Literal["pending", "completed", "declined", "cancelled", "expired"]


class TradeCreate(BaseModel):
    recipient_id: int = Field(..., gt=0)
    offer: AssetBundle = Field(default_factory=AssetBundle, description="What the requester gives")
    request: AssetBundle = Field(default_factory=AssetBundle, description="What the requester wants in return")
    message: str = Field(default="", max_length=1000)


class TradeDecline(BaseModel):
    reason: str = Field(default="", max_length=500)


class TradeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    requester_id: int
    recipient_id: int
    requester_offer: AssetBundle
    recipient_offer: AssetBundle
    requester_value: Decimal
    recipient_value: Decimal
    status: TradeStatus
    message: Optional[str] = None
    decline_reason: Optional[str] = None
    expires_at: datetime
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    @field_validator("requester_offer", "recipient_offer", mode="before")
    @classmethod
    def load_bundle(cls, v):
        if isinstance(v, dict):
            return AssetBundle.from_document(v)
        return v


class TradeStatistics(BaseModel):
    total_trades: int
    completed_trades: int
    pending_trades: int
    declined_trades: int
    cancelled_trades: int
    expired_trades: int
    avg_trade_value: Decimal
