from datetime import datetime
from sqlalchemy import String, Integer, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from tradepost.db.base import Base


class AuditLog(Base):
    """Write-only forensic record of security relevant events."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)  # None for system jobs

    action: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    object_type: Mapped[str] = mapped_column(String(16), nullable=False)  # item / currency / nft / trade / user / system
    object_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    severity: Mapped[str] = mapped_column(String(8), nullable=False, default="medium")
    created_at: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False, default=datetime.utcnow)
