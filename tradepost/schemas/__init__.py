from .auth import RegisterIn, TokenOut, UserOut
from .bundle import AssetBundle, ItemLine, TokenLine, CurrencyLine, BUNDLE_SCHEMA_VERSION
from .currency import CurrencyOut, BalanceOut, TransactionOut
from .inventory import UserItemOut, UniqueTokenOut, TokenTransferOut
from .notification import (
    NotificationBase,
    NotificationResponse,
    NotificationListResponse,
)
from .trade import TradeCreate, TradeDecline, TradeOut, TradeStatistics

__all__ = [
    "RegisterIn",
    "TokenOut",
    "UserOut",
    "AssetBundle",
    "ItemLine",
    "TokenLine",
    "CurrencyLine",
    "BUNDLE_SCHEMA_VERSION",
    "CurrencyOut",
    "BalanceOut",
    "TransactionOut",
    "UserItemOut",
    "UniqueTokenOut",
    "TokenTransferOut",
    "NotificationBase",
    "NotificationResponse",
    "NotificationListResponse",
    "TradeCreate",
    "TradeDecline",
    "TradeOut",
    "TradeStatistics",
]
