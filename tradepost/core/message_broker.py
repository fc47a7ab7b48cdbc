"""
Redis pub/sub broker for trade and inbox events.

Publishing is fire-and-forget: nothing is queued when no subscriber is
listening, and callers decide what a RedisError means for them.
"""
import json
import logging
from typing import Any, Callable, Iterable, Optional

import redis

from tradepost.core.config import settings

logger = logging.getLogger(__name__)

TRADES_CHANNEL = "trades"
NOTIFICATIONS_CHANNEL = "notifications"


def encode_event(message: dict[str, Any]) -> str:
    # Decimals and datetimes travel as strings
    return json.dumps(message, default=str)


class MessageBroker:
    """Thin wrapper over a redis client (connects lazily, on the first command)."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.client = client or redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=0,
            decode_responses=True,
        )

    def publish(self, channel: str, message: dict[str, Any]) -> int:
        """Publish ``message`` on ``channel``; returns the number of subscribers reached."""
        receivers = self.client.publish(channel, encode_event(message))
        logger.debug("published on %s to %s subscriber(s)", channel, receivers)
        return receivers

    def listen(self, channels: Iterable[str], callback: Callable[[str, dict], None]) -> None:
        """
        Block, calling ``callback(channel, data)`` for every event on ``channels``.

        Messages that are not valid JSON are logged and skipped.
        """
        pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(*channels)
        try:
            for message in pubsub.listen():
                try:
                    data = json.loads(message["data"])
                except (TypeError, ValueError):
                    logger.warning("dropping undecodable message on %s", message.get("channel"))
                    continue
                callback(message["channel"], data)
        finally:
            pubsub.close()

    def close(self) -> None:
        self.client.close()


message_broker = MessageBroker()
