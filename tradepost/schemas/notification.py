"""
Notification Schemas for API Request/Response
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class NotificationBase(BaseModel):
    """Base notification schema."""
    type: str = Field(..., description="Notification type: TRADE, CURRENCY, ANNOUNCEMENT")
    title: str = Field(..., max_length=128)
    message: str


class NotificationResponse(NotificationBase):
    """Schema for notification response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    data: Optional[str] = None
    is_read: bool
    created_at: datetime
    read_at: Optional[datetime] = None


class NotificationListResponse(BaseModel):
    """Schema for list of notifications."""
    total: int
    unread_count: int
    notifications: list[NotificationResponse]
