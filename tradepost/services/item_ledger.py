"""
Item Stock Ledger
Stackable item quantities per user, and reservations held by pending trades.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, delete, func
from sqlalchemy.orm import Session

from tradepost.core.errors import (
    InsufficientAvailable,
    InsufficientQuantity,
    InvalidAmount,
    ItemNotFound,
    NotStackable,
    StackLimitExceeded,
)
from tradepost.models.item import Item, UserItem, ItemReservation, RARITIES, ITEM_TYPES

logger = logging.getLogger(__name__)


def _check_quantity(quantity: int) -> int:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise InvalidAmount("Quantity must be a positive integer", details={"quantity": quantity})
    return quantity


class ItemLedger:
    """Service for item definitions, user stock and item reservations."""

    def __init__(self, db: Session):
        self.db = db

    # -----------------------------
    # Catalog
    # -----------------------------

    def create_item(
        self,
        name: str,
        item_type: str = "collectible",
        rarity: str = "common",
        is_tradeable: bool = True,
        is_stackable: bool = True,
        max_stack_size: int = 999,
    ) -> Item:
        if item_type not in ITEM_TYPES:
            raise ValueError(f"Unknown item type: {item_type}")
        if rarity not in RARITIES:
            raise ValueError(f"Unknown rarity: {rarity}")

        item = Item(
            name=name,
            item_type=item_type,
            rarity=rarity,
            is_tradeable=is_tradeable,
            is_stackable=is_stackable,
            max_stack_size=max_stack_size,
            status="active",
        )
        self.db.add(item)
        self.db.flush()
        return item

    def get_item(self, item_id: int) -> Optional[Item]:
        return self.db.get(Item, item_id)

    def require_item(self, item_id: int) -> Item:
        item = self.db.get(Item, item_id)
        if item is None:
            raise ItemNotFound(details={"item_id": item_id})
        return item

    # -----------------------------
    # Stock
    # -----------------------------

    def _stock_row(self, user_id: int, item_id: int, lock: bool = False) -> Optional[UserItem]:
        stmt = select(UserItem).where(UserItem.user_id == user_id, UserItem.item_id == item_id)
        if lock:
            stmt = stmt.with_for_update()
        return self.db.scalar(stmt)

    def get_quantity(self, user_id: int, item_id: int) -> int:
        row = self._stock_row(user_id, item_id)
        return row.quantity if row is not None else 0

    def add(self, user_id: int, item_id: int, quantity: int, acquired_method: str = "awarded") -> UserItem:
        """
        Add stock, creating the (user, item) row if needed.

        Raises:
            InvalidAmount: If quantity is not a positive integer
            ItemNotFound: If the item definition does not exist
            NotStackable: If the item only exists as unique tokens
            StackLimitExceeded: If the result would exceed max_stack_size
        """
        _check_quantity(quantity)
        item = self.require_item(item_id)
        if not item.is_stackable:
            raise NotStackable(details={"item_id": item_id})

        row = self._stock_row(user_id, item_id, lock=True)
        current = row.quantity if row is not None else 0
        if current + quantity > item.max_stack_size:
            raise StackLimitExceeded(
                details={"item_id": item_id, "user_id": user_id, "max_stack_size": item.max_stack_size}
            )

        if row is None:
            row = UserItem(user_id=user_id, item_id=item_id, quantity=quantity, acquired_method=acquired_method)
            self.db.add(row)
        else:
            row.quantity = current + quantity

        self.db.flush()
        return row

    def remove(self, user_id: int, item_id: int, quantity: int) -> int:
        """
        Remove stock. The row is deleted when it reaches zero.

        Returns:
            Remaining quantity

        Raises:
            InsufficientQuantity: If the user owns fewer than ``quantity``
        """
        _check_quantity(quantity)
        row = self._stock_row(user_id, item_id, lock=True)
        if row is None or row.quantity < quantity:
            raise InsufficientQuantity(
                details={
                    "user_id": user_id,
                    "item_id": item_id,
                    "owned": row.quantity if row is not None else 0,
                    "requested": quantity,
                }
            )

        remaining = row.quantity - quantity
        if remaining == 0:
            self.db.delete(row)
        else:
            row.quantity = remaining
            row.last_used_at = datetime.utcnow()

        self.db.flush()
        return remaining

    def list_user_items(self, user_id: int) -> List[Tuple[UserItem, Item]]:
        stmt = (
            select(UserItem, Item)
            .join(Item, UserItem.item_id == Item.id)
            .where(UserItem.user_id == user_id)
            .order_by(Item.name.asc())
        )
        return [(row, item) for row, item in self.db.execute(stmt).all()]

    # -----------------------------
    # Reservations
    # -----------------------------

    def reserved_quantity(self, user_id: int, item_id: int, exclude_trade: Optional[int] = None) -> int:
        stmt = select(func.coalesce(func.sum(ItemReservation.quantity), 0)).where(
            ItemReservation.user_id == user_id,
            ItemReservation.item_id == item_id,
        )
        if exclude_trade is not None:
            stmt = stmt.where(ItemReservation.trade_id != exclude_trade)
        return int(self.db.scalar(stmt))

    def available(self, user_id: int, item_id: int, exclude_trade: Optional[int] = None) -> int:
        """Owned quantity minus quantity held by (other) pending trades."""
        owned = self.get_quantity(user_id, item_id)
        return max(0, owned - self.reserved_quantity(user_id, item_id, exclude_trade))

    def reserve(self, user_id: int, item_id: int, quantity: int, trade_id: int) -> ItemReservation:
        """
        Hold ``quantity`` of a user's stock for a trade.

        Reserving again for the same trade replaces the earlier quantity.

        Raises:
            InsufficientAvailable: If unreserved stock is below ``quantity``
        """
        _check_quantity(quantity)

        # Lock the stock row so concurrent reservations serialise on it
        self._stock_row(user_id, item_id, lock=True)
        available = self.available(user_id, item_id, exclude_trade=trade_id)
        if quantity > available:
            raise InsufficientAvailable(
                details={"user_id": user_id, "item_id": item_id, "available": available, "requested": quantity}
            )

        reservation = self.db.scalar(
            select(ItemReservation).where(ItemReservation.trade_id == trade_id, ItemReservation.item_id == item_id)
        )
        if reservation is None:
            reservation = ItemReservation(user_id=user_id, item_id=item_id, trade_id=trade_id, quantity=quantity)
            self.db.add(reservation)
        else:
            reservation.quantity = quantity
            reservation.reserved_at = datetime.utcnow()

        self.db.flush()
        return reservation

    def release_by_trade(self, trade_id: int) -> int:
        """Delete every reservation held by ``trade_id``. Returns how many."""
        result = self.db.execute(delete(ItemReservation).where(ItemReservation.trade_id == trade_id))
        return result.rowcount

    def reservations_for_trade(self, trade_id: int) -> List[ItemReservation]:
        stmt = select(ItemReservation).where(ItemReservation.trade_id == trade_id)
        return list(self.db.scalars(stmt).all())
