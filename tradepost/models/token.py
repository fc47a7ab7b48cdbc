from datetime import datetime
from sqlalchemy import String, Integer, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from tradepost.db.base import Base


class UniqueToken(Base):
    """A non-stackable, individually owned instance of an item."""

    __tablename__ = "unique_tokens"

    id: Mapped[int] = mapped_column(primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), index=True, nullable=False)
    token_uid: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    owner_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True, nullable=True)
    original_owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    rarity: Mapped[str] = mapped_column(String(16), nullable=False, default="common")
    upgrade_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_tradeable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    is_reserved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reserved_for_trade: Mapped[int | None] = mapped_column(ForeignKey("trades.id"), index=True, nullable=True)

    minted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class TokenTransfer(Base):
    """Ownership history of a unique token."""

    __tablename__ = "token_transfers"

    id: Mapped[int] = mapped_column(primary_key=True)
    token_id: Mapped[int] = mapped_column(ForeignKey("unique_tokens.id"), index=True, nullable=False)
    from_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)  # None on mint
    to_user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    transfer_type: Mapped[str] = mapped_column(String(16), nullable=False, default="trade")  # mint / trade / admin
    trade_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
