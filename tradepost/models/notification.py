from datetime import datetime
from sqlalchemy import String, Integer, DateTime, Text, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from tradepost.db.base import Base


class Notification(Base):
    """Notification model for storing user notifications."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)

    # Notification details
    type: Mapped[str] = mapped_column(String(32), nullable=False)  # TRADE, CURRENCY, ANNOUNCEMENT
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # Metadata
    data: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON string for extra data

    # Status
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    read_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
