"""
Unique-Token Registry
Ownership of non-stackable assets, plus the reservation bit used by pending trades.
"""
import logging
import secrets
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from tradepost.core.errors import AlreadyReserved, ItemNotFound, NonTradeable, TokenNotFound
from tradepost.models.item import Item, RARITIES
from tradepost.models.token import UniqueToken, TokenTransfer

logger = logging.getLogger(__name__)


class TokenRegistry:
    """Service for minting, transferring and reserving unique tokens."""

    def __init__(self, db: Session):
        self.db = db

    def mint(
        self,
        item_id: int,
        owner_id: int,
        rarity: str = "common",
        upgrade_level: int = 0,
        is_tradeable: bool = True,
    ) -> UniqueToken:
        """
        Create a new token owned by ``owner_id``.

        Raises:
            ItemNotFound: If the item definition does not exist
            ValueError: If rarity is not a known tier
        """
        if self.db.get(Item, item_id) is None:
            raise ItemNotFound(details={"item_id": item_id})
        if rarity not in RARITIES:
            raise ValueError(f"Unknown rarity: {rarity}")

        token = UniqueToken(
            item_id=item_id,
            token_uid=secrets.token_hex(16),
            owner_id=owner_id,
            original_owner_id=owner_id,
            rarity=rarity,
            upgrade_level=upgrade_level,
            is_tradeable=is_tradeable,
            is_reserved=False,
        )
        self.db.add(token)
        self.db.flush()

        self.db.add(TokenTransfer(token_id=token.id, from_user_id=None, to_user_id=owner_id, transfer_type="mint"))
        self.db.flush()
        return token

    def get(self, token_id: int) -> UniqueToken:
        token = self.db.get(UniqueToken, token_id)
        if token is None:
            raise TokenNotFound(details={"token_id": token_id})
        return token

    def find(self, token_id: int) -> Optional[UniqueToken]:
        return self.db.get(UniqueToken, token_id)

    def is_owned_by(self, token_id: int, user_id: int) -> bool:
        token = self.db.get(UniqueToken, token_id)
        return token is not None and token.owner_id == user_id

    def transfer(
        self,
        token_id: int,
        new_owner_id: int,
        transfer_type: str = "trade",
        trade_id: Optional[int] = None,
    ) -> UniqueToken:
        """
        Flip ownership of a token. ``original_owner_id`` is never touched.

        Raises:
            TokenNotFound: If the token does not exist or has no owner
            NonTradeable: If the token is flagged non-tradeable
        """
        token = self.db.scalar(select(UniqueToken).where(UniqueToken.id == token_id).with_for_update())
        if token is None or token.owner_id is None:
            raise TokenNotFound(details={"token_id": token_id})
        if not token.is_tradeable:
            raise NonTradeable(f"Token {token_id} is not tradeable", details={"token_id": token_id})

        previous_owner = token.owner_id
        token.owner_id = new_owner_id
        token.updated_at = datetime.utcnow()

        self.db.add(
            TokenTransfer(
                token_id=token_id,
                from_user_id=previous_owner,
                to_user_id=new_owner_id,
                transfer_type=transfer_type,
                trade_id=trade_id,
            )
        )
        self.db.flush()

        logger.debug("token %s transferred %s -> %s", token_id, previous_owner, new_owner_id)
        return token

    def reserve(self, token_id: int, trade_id: int) -> None:
        """
        Mark a token as reserved for a trade.

        The flag is flipped with a compare-and-set so two trades can never
        both hold the reservation.

        Raises:
            TokenNotFound: If the token does not exist
            AlreadyReserved: If another trade holds the reservation
        """
        result = self.db.execute(
            update(UniqueToken)
            .where(UniqueToken.id == token_id, UniqueToken.is_reserved.is_(False))
            .values(is_reserved=True, reserved_for_trade=trade_id)
        )
        if result.rowcount == 1:
            return

        token = self.get(token_id)
        if token.reserved_for_trade == trade_id:
            return
        raise AlreadyReserved(details={"token_id": token_id, "reserved_for_trade": token.reserved_for_trade})

    def release(self, token_id: int) -> None:
        self.db.execute(
            update(UniqueToken)
            .where(UniqueToken.id == token_id)
            .values(is_reserved=False, reserved_for_trade=None)
        )

    def release_by_trade(self, trade_id: int) -> int:
        """Release every token reserved for ``trade_id``. Returns how many."""
        result = self.db.execute(
            update(UniqueToken)
            .where(UniqueToken.reserved_for_trade == trade_id)
            .values(is_reserved=False, reserved_for_trade=None)
        )
        return result.rowcount

    def list_owned(self, user_id: int) -> List[UniqueToken]:
        stmt = select(UniqueToken).where(UniqueToken.owner_id == user_id).order_by(UniqueToken.id.asc())
        return list(self.db.scalars(stmt).all())

    def history(self, token_id: int) -> List[TokenTransfer]:
        stmt = (
            select(TokenTransfer)
            .where(TokenTransfer.token_id == token_id)
            .order_by(TokenTransfer.created_at.asc(), TokenTransfer.id.asc())
        )
        return list(self.db.scalars(stmt).all())
