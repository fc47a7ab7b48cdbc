"""
Asset bundles: one side of a trade.

A bundle is persisted on the trade row as a JSON document. Amounts are
serialised as decimal strings, and every document carries ``schema_version``
so stored trades stay readable when the layout changes.
"""
from collections import OrderedDict
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

BUNDLE_SCHEMA_VERSION = 1


class ItemLine(BaseModel):
    item_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)


class TokenLine(BaseModel):
    token_id: int = Field(..., gt=0)


class CurrencyLine(BaseModel):
    currency_id: int = Field(..., gt=0)
    amount: Decimal = Field(..., gt=0)


class AssetBundle(BaseModel):
    schema_version: int = BUNDLE_SCHEMA_VERSION
    items: list[ItemLine] = Field(default_factory=list)
    tokens: list[TokenLine] = Field(default_factory=list)
    currencies: list[CurrencyLine] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.items or self.tokens or self.currencies)

    @property
    def token_ids(self) -> list[int]:
        return [t.token_id for t in self.tokens]

    def normalized(self) -> "AssetBundle":
        """Merge duplicate item/currency lines and drop repeated tokens."""
        items: "OrderedDict[int, int]" = OrderedDict()
        for line in self.items:
            items[line.item_id] = items.get(line.item_id, 0) + line.quantity

        currencies: "OrderedDict[int, Decimal]" = OrderedDict()
        for line in self.currencies:
            currencies[line.currency_id] = currencies.get(line.currency_id, Decimal("0")) + line.amount

        return AssetBundle(
            items=[ItemLine(item_id=k, quantity=v) for k, v in items.items()],
            tokens=[TokenLine(token_id=t) for t in dict.fromkeys(self.token_ids)],
            currencies=[CurrencyLine(currency_id=k, amount=v) for k, v in currencies.items()],
        )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, doc: dict[str, Any] | None) -> "AssetBundle":
        if not doc:
            return cls()
        version = doc.get("schema_version", BUNDLE_SCHEMA_VERSION)
        if version != BUNDLE_SCHEMA_VERSION:
            raise ValueError(f"Unsupported bundle schema_version: {version}")
        return cls.model_validate(doc)
