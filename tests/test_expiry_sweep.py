"""
Tests for the background expiry sweeper
"""
import threading
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.orm import sessionmaker

from tradepost.core.errors import InternalError
from tradepost.models.audit import AuditLog
from tradepost.models.item import ItemReservation
from tradepost.models.trade import Trade
from tradepost.services.expiry_sweeper import ExpirySweeper, run_sweep


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False)


def make_pending(db, requester, recipient, expires_at) -> Trade:
    trade = Trade(
        requester_id=requester.id,
        recipient_id=recipient.id,
        requester_offer={"items": [{"item_id": 1, "quantity": 1}]},
        recipient_offer={},
        expires_at=expires_at,
    )
    db.add(trade)
    db.commit()
    return trade


def test_run_sweep_expires_stale_trades(db_session, session_factory, items, alice, bob, carol, potion):
    items.add(alice.id, potion.id, 3)
    stale = make_pending(db_session, alice, bob, datetime.utcnow() - timedelta(hours=1))
    fresh = make_pending(db_session, alice, carol, datetime.utcnow() + timedelta(days=3))
    items.reserve(alice.id, potion.id, 1, stale.id)
    db_session.commit()

    assert run_sweep(session_factory) == [stale.id]

    db_session.expire_all()
    assert db_session.get(Trade, stale.id).status == "expired"
    assert db_session.get(Trade, fresh.id).status == "pending"
    assert db_session.query(ItemReservation).count() == 0
    assert db_session.query(AuditLog).filter(AuditLog.action == "trades_expired").count() == 1


def test_second_run_finds_nothing(db_session, session_factory, alice, bob):
    make_pending(db_session, alice, bob, datetime.utcnow() - timedelta(days=1))

    assert len(run_sweep(session_factory)) == 1
    assert run_sweep(session_factory) == []
    assert db_session.query(AuditLog).count() == 1


@pytest.mark.parametrize("failure", [InternalError(), RuntimeError("database went away")])
def test_run_once_logs_and_survives_failure(session_factory, caplog, failure):
    sweeper = ExpirySweeper(session_factory, interval_seconds=60)

    with patch("tradepost.services.expiry_sweeper.run_sweep", side_effect=failure):
        assert sweeper.run_once() == []

    assert "expiry sweep failed" in caplog.text


def test_loop_runs_until_stopped(session_factory):
    ran = threading.Event()

    def fake_sweep(factory):
        ran.set()
        return []

    sweeper = ExpirySweeper(session_factory, interval_seconds=0.01)
    with patch("tradepost.services.expiry_sweeper.run_sweep", side_effect=fake_sweep):
        sweeper.start()
        assert sweeper.running
        assert ran.wait(timeout=2)
        sweeper.stop()

    assert not sweeper.running


def test_loop_keeps_running_after_unexpected_error(session_factory):
    calls = []
    second_run = threading.Event()

    def flaky_sweep(factory):
        calls.append(factory)
        if len(calls) == 1:
            raise RuntimeError("database went away")
        second_run.set()
        return []

    sweeper = ExpirySweeper(session_factory, interval_seconds=0.01)
    with patch("tradepost.services.expiry_sweeper.run_sweep", side_effect=flaky_sweep):
        sweeper.start()
        assert second_run.wait(timeout=2)
        assert sweeper.running
        sweeper.stop()
