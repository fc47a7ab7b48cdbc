"""Print trade and inbox events as they are published, until interrupted."""
from tradepost.core.config import settings
from tradepost.core.logging_config import configure_logging
from tradepost.core.message_broker import NOTIFICATIONS_CHANNEL, TRADES_CHANNEL, message_broker


def print_event(channel: str, data: dict) -> None:
    if channel == TRADES_CHANNEL:
        print(f"[{channel}] {data.get('event')} trade={data.get('data', {}).get('trade_id')}")
    else:
        print(f"[{channel}] user={data.get('user_id')} {data.get('title')}")


def main() -> None:
    configure_logging(settings.log_level)
    try:
        message_broker.listen([TRADES_CHANNEL, NOTIFICATIONS_CHANNEL], print_event)
    except KeyboardInterrupt:
        pass
    finally:
        message_broker.close()


if __name__ == "__main__":
    main()
