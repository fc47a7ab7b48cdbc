from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from tradepost.core.config import settings
from tradepost.core.logging_config import configure_logging
from tradepost.core.security import hash_password
from tradepost.db.session import SessionLocal, init_db
from tradepost.models.currency import Currency
from tradepost.models.item import Item
from tradepost.models.user import User
from tradepost.services.currency_ledger import CurrencyLedger
from tradepost.services.item_ledger import ItemLedger
from tradepost.services.token_registry import TokenRegistry

DEMO_USERS = [
    ("alice", "Alice"),
    ("bob", "Bob"),
]

DEFAULT_CURRENCIES = [
    # name, slug, symbol, decimal_places, exchange_rate, is_default
    ("Gold Coins", "gold", "G", 0, Decimal("1"), True),
    ("Gems", "gems", "💎", 2, Decimal("10"), False),
]

DEFAULT_ITEMS = [
    # name, type, rarity, stackable, max stack
    ("Health Potion", "consumable", "common", True, 99),
    ("Iron Ore", "material", "uncommon", True, 999),
    ("Dragon Scale", "collectible", "epic", True, 50),
    ("Flaming Sword", "equipment", "legendary", False, 1),
]


def _user(db: Session, username: str, display_name: str) -> User:
    user = db.scalar(select(User).where(User.username == username))
    if user is None:
        user = User(username=username, display_name=display_name, password_hash=hash_password("password123"))
        db.add(user)
        db.flush()
    return user


def main() -> None:
    configure_logging(settings.log_level)
    init_db()

    db: Session = SessionLocal()
    try:
        currencies = CurrencyLedger(db)
        items = ItemLedger(db)
        tokens = TokenRegistry(db)

        users = [_user(db, username, name) for username, name in DEMO_USERS]

        for name, slug, symbol, places, rate, is_default in DEFAULT_CURRENCIES:
            if db.scalar(select(Currency).where(Currency.slug == slug)) is None:
                currencies.create_currency(name, slug, symbol, places, rate, is_default)

        for name, item_type, rarity, stackable, max_stack in DEFAULT_ITEMS:
            if db.scalar(select(Item).where(Item.name == name)) is None:
                items.create_item(name, item_type, rarity, is_stackable=stackable, max_stack_size=max_stack)

        gold = db.scalar(select(Currency).where(Currency.slug == "gold"))
        stackables = db.scalars(select(Item).where(Item.is_stackable.is_(True))).all()
        sword = db.scalar(select(Item).where(Item.name == "Flaming Sword"))

        for user in users:
            if currencies.get_balance(user.id, gold.id) == 0:
                currencies.credit(user.id, gold.id, 500, transaction_type="awarded",
                                  reference_type="award", description="Starter balance")
            for item in stackables:
                if items.get_quantity(user.id, item.id) == 0:
                    items.add(user.id, item.id, 5, acquired_method="awarded")
            if not tokens.list_owned(user.id):
                tokens.mint(sword.id, user.id, rarity="legendary", upgrade_level=1)

        db.commit()
        print("✅ Seeded users, currencies, items and tokens.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
