from .user import User
from .currency import Currency, CurrencyBalance, CurrencyTransaction
from .item import Item, UserItem, ItemReservation
from .token import UniqueToken, TokenTransfer
from .trade import Trade
from .audit import AuditLog
from .notification import Notification

__all__ = [
    "User",
    "Currency",
    "CurrencyBalance",
    "CurrencyTransaction",
    "Item",
    "UserItem",
    "ItemReservation",
    "UniqueToken",
    "TokenTransfer",
    "Trade",
    "AuditLog",
    "Notification",
]
