from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, DateTime, Text, Numeric, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tradepost.db.base import Base

PENDING = "pending"
COMPLETED = "completed"
DECLINED = "declined"
CANCELLED = "cancelled"
EXPIRED = "expired"

TRADE_STATUSES = (PENDING, COMPLETED, DECLINED, CANCELLED, EXPIRED)
TERMINAL_STATUSES = (COMPLETED, DECLINED, CANCELLED, EXPIRED)


class Trade(Base):
    __tablename__ = "trades"

    id: Mapped[int] = mapped_column(primary_key=True)

    requester_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)

    # AssetBundle documents, see tradepost.schemas.bundle
    requester_offer: Mapped[dict] = mapped_column(JSON, nullable=False)
    recipient_offer: Mapped[dict] = mapped_column(JSON, nullable=False)

    # Valuation snapshot at creation time (informational)
    requester_value: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False, default=Decimal("0"))
    recipient_value: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False, default=Decimal("0"))

    status: Mapped[str] = mapped_column(String(16), index=True, nullable=False, default=PENDING)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    decline_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("requester_id <> recipient_id", name="distinct_parties"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == PENDING

    def involves(self, user_id: int) -> bool:
        return user_id in (self.requester_id, self.recipient_id)
