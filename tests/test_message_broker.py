"""
Tests for the Redis message broker (client mocked)
"""
import json
from datetime import datetime
from decimal import Decimal
from unittest.mock import Mock

from tradepost.core.message_broker import MessageBroker, TRADES_CHANNEL


class TestPublish:
    """Tests for publish."""

    def test_publish_encodes_decimals_and_dates(self):
        client = Mock()
        client.publish.return_value = 2
        broker = MessageBroker(client)

        receivers = broker.publish(TRADES_CHANNEL, {"amount": Decimal("1.50"), "at": datetime(2026, 1, 1)})

        assert receivers == 2
        channel, payload = client.publish.call_args.args
        assert channel == "trades"
        assert json.loads(payload) == {"amount": "1.50", "at": "2026-01-01 00:00:00"}


class TestListen:
    """Tests for listen."""

    def test_listen_decodes_and_skips_garbage(self):
        pubsub = Mock()
        pubsub.listen.return_value = iter([
            {"type": "message", "channel": "trades", "data": json.dumps({"event": "new_trade"})},
            {"type": "message", "channel": "trades", "data": "not json"},
            {"type": "message", "channel": "notifications", "data": json.dumps({"user_id": 3})},
        ])
        client = Mock()
        client.pubsub.return_value = pubsub
        received = []

        MessageBroker(client).listen(["trades", "notifications"], lambda channel, data: received.append((channel, data)))

        pubsub.subscribe.assert_called_once_with("trades", "notifications")
        assert received == [("trades", {"event": "new_trade"}), ("notifications", {"user_id": 3})]
        pubsub.close.assert_called_once()
