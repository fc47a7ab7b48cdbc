"""
Error taxonomy.

Every expected failure of the ledgers and the trade engine is a subclass of
TradepostError with a stable machine-readable ``code``. Callers catch the
base class; the HTTP layer renders ``code``/``message`` as JSON.
"""
from typing import Any, Optional


class TradepostError(Exception):
    code = "error"
    http_status = 400
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


# -----------------------------
# Trade creation
# -----------------------------

class SelfTrade(TradepostError):
    code = "self_trade"
    default_message = "Cannot trade with yourself"


class InvalidUsers(TradepostError):
    code = "invalid_users"
    default_message = "Invalid users specified"


class EmptyOffer(TradepostError):
    code = "empty_offer"
    default_message = "You must offer at least one item, token or currency"


class EmptyRequest(TradepostError):
    code = "empty_request"
    default_message = "You must request at least one item, token or currency"


class InsufficientItems(TradepostError):
    code = "insufficient_items"
    default_message = "Insufficient item quantity"


class InsufficientCurrency(TradepostError):
    code = "insufficient_currency"
    default_message = "Insufficient currency balance"


class NonTradeable(TradepostError):
    code = "non_tradeable"
    default_message = "One or more assets cannot be traded"


class InvalidNFT(TradepostError):
    code = "invalid_nft"
    default_message = "Invalid unique token specified"


class TradeExists(TradepostError):
    code = "trade_exists"
    http_status = 409
    default_message = "A pending trade already exists between these users"


# -----------------------------
# State machine guards
# -----------------------------

class TradeNotFound(TradepostError):
    code = "trade_not_found"
    http_status = 404
    default_message = "Trade not found"


class PermissionDenied(TradepostError):
    code = "permission_denied"
    http_status = 403
    default_message = "You cannot act on this trade"


class InvalidStatus(TradepostError):
    code = "invalid_status"
    http_status = 409
    default_message = "Trade is no longer pending"


class TradeExpired(TradepostError):
    code = "trade_expired"
    http_status = 409
    default_message = "Trade has expired"


class ItemUnavailable(TradepostError):
    code = "item_unavailable"
    http_status = 409
    default_message = "An offered item is no longer available"


class CurrencyUnavailable(TradepostError):
    code = "currency_unavailable"
    http_status = 409
    default_message = "An offered currency amount is no longer available"


class RateLimited(TradepostError):
    code = "rate_limited"
    http_status = 429
    default_message = "Too many requests. Please wait before trying again."


class SettlementFailed(TradepostError):
    code = "settlement_failed"
    http_status = 409
    default_message = "Trade execution failed"


# -----------------------------
# Ledger level
# -----------------------------

class InvalidAmount(TradepostError):
    code = "invalid_amount"
    default_message = "Amount must be positive"


class InsufficientFunds(TradepostError):
    code = "insufficient_funds"
    default_message = "Insufficient currency balance"


class SameUser(TradepostError):
    code = "same_user"
    default_message = "Cannot transfer to same user"


class CurrencyNotFound(TradepostError):
    code = "currency_not_found"
    http_status = 404
    default_message = "Currency not found"


class CurrencyExists(TradepostError):
    code = "currency_exists"
    http_status = 409
    default_message = "Currency with this slug already exists"


class TokenNotFound(TradepostError):
    code = "token_not_found"
    http_status = 404
    default_message = "Token not found"


class AlreadyReserved(TradepostError):
    code = "already_reserved"
    http_status = 409
    default_message = "Token is already reserved for another trade"


class ItemNotFound(TradepostError):
    code = "item_not_found"
    http_status = 404
    default_message = "Item not found"


class NotStackable(TradepostError):
    code = "not_stackable"
    default_message = "Item is not stackable"


class StackLimitExceeded(TradepostError):
    code = "stack_limit_exceeded"
    default_message = "Item stack limit exceeded"


class InsufficientQuantity(TradepostError):
    code = "insufficient_quantity"
    default_message = "Not enough items in inventory"


class InsufficientAvailable(TradepostError):
    code = "insufficient_available"
    http_status = 409
    default_message = "Not enough unreserved items available"


class InternalError(TradepostError):
    code = "internal_error"
    http_status = 500
    default_message = "Internal error"
