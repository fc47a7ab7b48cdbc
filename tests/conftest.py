import os
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import Mock

import pytest

# Required settings must exist before tradepost.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.setdefault("SWEEP_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from tradepost.core.config import settings
from tradepost.core.security import hash_password
from tradepost.db.base import Base
import tradepost.models  # noqa: F401
from tradepost.models.user import User
from tradepost.services.audit import AuditSink, MemoryRateLimiter, memory_rate_limiter
from tradepost.services.currency_ledger import CurrencyLedger
from tradepost.services.item_ledger import ItemLedger
from tradepost.services.token_registry import TokenRegistry
from tradepost.services.trade_engine import TradeEngine


class FakeClock:
    """Controllable replacement for datetime.utcnow."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset any singleton instances between tests"""
    memory_rate_limiter.reset()
    yield
    memory_rate_limiter.reset()


@pytest.fixture(scope="function")
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Session:
    """Create a fresh database session for each test."""
    SessionLocal = sessionmaker(bind=db_engine, autoflush=False, autocommit=False)
    session = SessionLocal()
    yield session
    session.close()


def make_user(db: Session, username: str) -> User:
    user = User(username=username, display_name=username.title(), password_hash=hash_password("password123"))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def alice(db_session) -> User:
    return make_user(db_session, "alice")


@pytest.fixture
def bob(db_session) -> User:
    return make_user(db_session, "bob")


@pytest.fixture
def carol(db_session) -> User:
    return make_user(db_session, "carol")


@pytest.fixture
def currencies(db_session) -> CurrencyLedger:
    return CurrencyLedger(db_session)


@pytest.fixture
def items(db_session) -> ItemLedger:
    return ItemLedger(db_session)


@pytest.fixture
def tokens(db_session) -> TokenRegistry:
    return TokenRegistry(db_session)


@pytest.fixture
def gold(db_session, currencies):
    currency = currencies.create_currency("Gold Coins", "gold", "G", decimal_places=0, is_default=True)
    db_session.commit()
    return currency


@pytest.fixture
def gems(db_session, currencies):
    currency = currencies.create_currency("Gems", "gems", "💎", decimal_places=2, exchange_rate=Decimal("10"))
    db_session.commit()
    return currency


@pytest.fixture
def potion(db_session, items):
    item = items.create_item("Health Potion", item_type="consumable", rarity="common", max_stack_size=99)
    db_session.commit()
    return item


@pytest.fixture
def ore(db_session, items):
    item = items.create_item("Iron Ore", item_type="material", rarity="uncommon")
    db_session.commit()
    return item


@pytest.fixture
def sword(db_session, items):
    item = items.create_item("Flaming Sword", item_type="equipment", rarity="legendary", is_stackable=False, max_stack_size=1)
    db_session.commit()
    return item


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> Mock:
    return Mock()


@pytest.fixture
def engine(db_session, currencies, tokens, items, clock, notifier) -> TradeEngine:
    return TradeEngine(
        db_session,
        currencies=currencies,
        tokens=tokens,
        items=items,
        audit=AuditSink(db_session),
        rate_limiter=MemoryRateLimiter(),
        notifier=notifier,
        config=settings,
        clock=clock,
    )
