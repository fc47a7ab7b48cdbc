"""
Trade valuation.

Values are a snapshot stored on the trade for display. They never block a
trade: lopsided offers are allowed.
"""
from decimal import Decimal

from sqlalchemy.orm import Session

from tradepost.models.currency import Currency
from tradepost.models.item import Item
from tradepost.models.token import UniqueToken
from tradepost.schemas.bundle import AssetBundle

RARITY_VALUES = {
    "common": Decimal("10"),
    "uncommon": Decimal("25"),
    "rare": Decimal("50"),
    "epic": Decimal("100"),
    "legendary": Decimal("250"),
    "mythic": Decimal("500"),
}
DEFAULT_RARITY_VALUE = Decimal("10")

TYPE_MULTIPLIERS = {
    "consumable": Decimal("0.5"),
    "equipment": Decimal("2.0"),
    "collectible": Decimal("1.5"),
    "material": Decimal("0.8"),
    "gift_box": Decimal("1.2"),
}
DEFAULT_TYPE_MULTIPLIER = Decimal("1.0")

UPGRADE_BONUS = Decimal("0.2")
VALUE_PRECISION = Decimal("0.0001")


def rarity_value(rarity: str) -> Decimal:
    return RARITY_VALUES.get(rarity, DEFAULT_RARITY_VALUE)


def token_value(token: UniqueToken) -> Decimal:
    """Rarity tier value scaled by 20% per upgrade level."""
    return rarity_value(token.rarity) * (1 + UPGRADE_BONUS * (token.upgrade_level or 0))


def item_value(item: Item, quantity: int) -> Decimal:
    multiplier = TYPE_MULTIPLIERS.get(item.item_type, DEFAULT_TYPE_MULTIPLIER)
    return rarity_value(item.rarity) * multiplier * quantity


def currency_value(currency: Currency, amount: Decimal) -> Decimal:
    return amount * currency.exchange_rate


class Valuator:
    """Sums per-asset values for a bundle. Unknown assets count as zero."""

    def __init__(self, db: Session):
        self.db = db

    def bundle_value(self, bundle: AssetBundle) -> Decimal:
        total = Decimal("0")

        for line in bundle.tokens:
            token = self.db.get(UniqueToken, line.token_id)
            if token is not None:
                total += token_value(token)

        for line in bundle.items:
            item = self.db.get(Item, line.item_id)
            if item is not None:
                total += item_value(item, line.quantity)

        for line in bundle.currencies:
            currency = self.db.get(Currency, line.currency_id)
            if currency is not None:
                total += currency_value(currency, line.amount)

        return total.quantize(VALUE_PRECISION)
