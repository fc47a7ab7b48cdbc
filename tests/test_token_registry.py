"""
Tests for the Unique-Token Registry
"""
from datetime import datetime, timedelta

import pytest

from tradepost.core.errors import AlreadyReserved, ItemNotFound, NonTradeable, TokenNotFound
from tradepost.models.trade import Trade
from tradepost.services.token_registry import TokenRegistry


def make_trade(db, requester, recipient) -> Trade:
    trade = Trade(
        requester_id=requester.id,
        recipient_id=recipient.id,
        requester_offer={},
        recipient_offer={},
        expires_at=datetime.utcnow() + timedelta(days=7),
    )
    db.add(trade)
    db.commit()
    return trade


class TestMint:
    """Tests for minting."""

    def test_mint_sets_owner_and_history(self, db_session, tokens: TokenRegistry, alice, sword):
        token = tokens.mint(sword.id, alice.id, rarity="epic", upgrade_level=2)
        db_session.commit()

        assert token.owner_id == alice.id
        assert token.original_owner_id == alice.id
        assert token.is_reserved is False
        assert len(token.token_uid) == 32

        history = tokens.history(token.id)
        assert [(h.transfer_type, h.from_user_id, h.to_user_id) for h in history] == [("mint", None, alice.id)]

    def test_mint_unknown_item(self, tokens: TokenRegistry, alice):
        with pytest.raises(ItemNotFound):
            tokens.mint(404, alice.id)

    def test_mint_unknown_rarity(self, tokens: TokenRegistry, alice, sword):
        with pytest.raises(ValueError):
            tokens.mint(sword.id, alice.id, rarity="ultra")


class TestTransfer:
    """Tests for ownership transfer."""

    def test_transfer_keeps_original_owner(self, db_session, tokens: TokenRegistry, alice, bob, sword):
        token = tokens.mint(sword.id, alice.id)
        tokens.transfer(token.id, bob.id, trade_id=None)
        db_session.commit()

        assert tokens.is_owned_by(token.id, bob.id)
        assert not tokens.is_owned_by(token.id, alice.id)
        assert tokens.get(token.id).original_owner_id == alice.id
        assert [h.transfer_type for h in tokens.history(token.id)] == ["mint", "trade"]

    def test_transfer_non_tradeable(self, tokens: TokenRegistry, alice, bob, sword):
        token = tokens.mint(sword.id, alice.id, is_tradeable=False)
        with pytest.raises(NonTradeable):
            tokens.transfer(token.id, bob.id)
        assert tokens.get(token.id).owner_id == alice.id

    def test_transfer_missing_token(self, tokens: TokenRegistry, bob):
        with pytest.raises(TokenNotFound):
            tokens.transfer(999, bob.id)

    def test_get_missing_token(self, tokens: TokenRegistry):
        with pytest.raises(TokenNotFound):
            tokens.get(999)
        assert tokens.find(999) is None

    def test_list_owned(self, tokens: TokenRegistry, alice, bob, sword):
        first = tokens.mint(sword.id, alice.id)
        tokens.mint(sword.id, bob.id)
        second = tokens.mint(sword.id, alice.id)

        assert [t.id for t in tokens.list_owned(alice.id)] == [first.id, second.id]


class TestReservation:
    """Tests for the reservation bit."""

    def test_reserve_and_release(self, db_session, tokens: TokenRegistry, alice, bob, sword):
        token = tokens.mint(sword.id, alice.id)
        trade = make_trade(db_session, alice, bob)

        tokens.reserve(token.id, trade.id)
        db_session.commit()
        reserved = tokens.get(token.id)
        assert reserved.is_reserved is True
        assert reserved.reserved_for_trade == trade.id

        tokens.release(token.id)
        db_session.commit()
        released = tokens.get(token.id)
        assert released.is_reserved is False
        assert released.reserved_for_trade is None

    def test_reserve_is_idempotent_for_same_trade(self, db_session, tokens: TokenRegistry, alice, bob, sword):
        token = tokens.mint(sword.id, alice.id)
        trade = make_trade(db_session, alice, bob)

        tokens.reserve(token.id, trade.id)
        tokens.reserve(token.id, trade.id)

    def test_second_trade_cannot_reserve(self, db_session, tokens: TokenRegistry, alice, bob, carol, sword):
        token = tokens.mint(sword.id, alice.id)
        first = make_trade(db_session, alice, bob)
        second = make_trade(db_session, alice, carol)

        tokens.reserve(token.id, first.id)
        with pytest.raises(AlreadyReserved):
            tokens.reserve(token.id, second.id)

    def test_release_by_trade(self, db_session, tokens: TokenRegistry, alice, bob, sword):
        trade = make_trade(db_session, alice, bob)
        a = tokens.mint(sword.id, alice.id)
        b = tokens.mint(sword.id, alice.id)
        tokens.reserve(a.id, trade.id)
        tokens.reserve(b.id, trade.id)

        assert tokens.release_by_trade(trade.id) == 2
        db_session.commit()
        assert tokens.get(a.id).is_reserved is False
