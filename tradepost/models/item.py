from datetime import datetime
from sqlalchemy import (
    String, Integer, DateTime, Boolean, ForeignKey, CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from tradepost.db.base import Base

RARITIES = ("common", "uncommon", "rare", "epic", "legendary", "mythic")
ITEM_TYPES = ("consumable", "equipment", "gift_box", "material", "collectible", "weapon", "armor")


class Item(Base):
    """Catalog definition of an item."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    item_type: Mapped[str] = mapped_column(String(16), nullable=False, default="collectible")
    rarity: Mapped[str] = mapped_column(String(16), nullable=False, default="common")

    is_tradeable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_stackable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    max_stack_size: Mapped[int] = mapped_column(Integer, nullable=False, default=999)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class UserItem(Base):
    """Stackable item stock held by a user."""

    __tablename__ = "user_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), index=True, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    acquired_method: Mapped[str] = mapped_column(String(16), nullable=False, default="awarded")
    acquired_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "item_id", name="user_item_unique"),
        CheckConstraint("quantity >= 0", name="non_negative_quantity"),
    )


class ItemReservation(Base):
    """Soft lock on part of a user's stock while a trade is pending."""

    __tablename__ = "item_reservations"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), index=True, nullable=False)
    trade_id: Mapped[int] = mapped_column(ForeignKey("trades.id"), index=True, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reserved_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("trade_id", "item_id", name="trade_item_unique"),
        CheckConstraint("quantity > 0", name="positive_reservation"),
    )
