"""
Tests for trade valuation
"""
from decimal import Decimal

from tradepost.schemas.bundle import AssetBundle, CurrencyLine, ItemLine, TokenLine
from tradepost.services.valuation import Valuator, item_value, rarity_value, token_value


def test_rarity_table():
    assert rarity_value("common") == Decimal("10")
    assert rarity_value("mythic") == Decimal("500")
    assert rarity_value("unheard-of") == Decimal("10")


def test_token_value_scales_with_upgrade(tokens, alice, sword):
    token = tokens.mint(sword.id, alice.id, rarity="rare", upgrade_level=3)
    # 50 * (1 + 0.2 * 3)
    assert token_value(token) == Decimal("80.0")


def test_item_value_uses_type_multiplier(potion, ore, sword):
    assert item_value(potion, 4) == Decimal("20.0")   # 10 * 0.5 * 4
    assert item_value(ore, 1) == Decimal("20.0")      # 25 * 0.8
    assert item_value(sword, 1) == Decimal("500.0")   # 250 * 2.0


def test_bundle_value_sums_every_asset(db_session, tokens, alice, potion, sword, gems):
    token = tokens.mint(sword.id, alice.id, rarity="epic")
    bundle = AssetBundle(
        items=[ItemLine(item_id=potion.id, quantity=2)],
        tokens=[TokenLine(token_id=token.id)],
        currencies=[CurrencyLine(currency_id=gems.id, amount=Decimal("1.5"))],
    )

    # potion 10 + epic token 100 + 1.5 gems at rate 10
    assert Valuator(db_session).bundle_value(bundle) == Decimal("125.0000")


def test_unknown_assets_count_as_zero(db_session):
    bundle = AssetBundle(items=[ItemLine(item_id=404, quantity=1)], tokens=[TokenLine(token_id=404)])
    assert Valuator(db_session).bundle_value(bundle) == Decimal("0")
