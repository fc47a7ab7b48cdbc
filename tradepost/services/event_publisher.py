"""
Event Publisher
Publishes events to message broker when things happen
"""
import logging
from typing import Callable, Dict

import redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tradepost.core.message_broker import TRADES_CHANNEL, message_broker
from tradepost.services import notification_service

logger = logging.getLogger(__name__)


class EventPublisher:
    """Publishes events to message broker."""

    @staticmethod
    def publish_trade_event(event: str, trade_data: dict) -> None:
        """Publish a trade lifecycle event (new_trade, trade_completed, ...)."""
        message_broker.publish(TRADES_CHANNEL, {
            'event': event,
            'data': trade_data
        })


TRADE_HANDLERS: Dict[str, Callable[[Session, dict], None]] = {
    "new_trade": notification_service.handle_trade_created,
    "trade_completed": notification_service.handle_trade_completed,
    "trade_declined": notification_service.handle_trade_declined,
    "trade_cancelled": notification_service.handle_trade_cancelled,
}


class TradeNotifier:
    """
    Fans a committed trade transition out to the inbox and the broker.

    Delivery is best-effort: a failure here is logged and never reaches the
    caller, because the trade itself is already committed.
    """

    def __init__(self, db: Session, enabled: bool = True):
        self.db = db
        self.enabled = enabled

    def notify(self, event: str, trade_data: dict) -> None:
        if not self.enabled:
            return

        handler = TRADE_HANDLERS.get(event)
        try:
            if handler is not None:
                handler(self.db, trade_data)
            EventPublisher.publish_trade_event(event, trade_data)
        except (redis.RedisError, SQLAlchemyError) as exc:
            self.db.rollback()
            logger.warning("trade %s: %s delivery failed: %s", trade_data.get("trade_id"), event, exc)
