"""
Tests for the audit sink and rate limiters
"""
from types import SimpleNamespace
from unittest.mock import Mock, patch

from tradepost.models.audit import AuditLog
from tradepost.services.audit import (
    AuditSink,
    MemoryRateLimiter,
    RedisRateLimiter,
    build_rate_limiter,
    memory_rate_limiter,
    rate_key,
)


class TestAuditSink:
    """Tests for writing audit rows."""

    def test_log_event_persists_with_session(self, db_session):
        sink = AuditSink(db_session)
        sink.log_event("trade_created", user_id=1, object_id=7, details={"recipient_id": 2})
        db_session.commit()

        entry = db_session.query(AuditLog).one()
        assert entry.action == "trade_created"
        assert entry.object_type == "trade"
        assert entry.details == {"recipient_id": 2}
        assert entry.severity == "medium"

    def test_rolled_back_with_caller(self, db_session):
        AuditSink(db_session).log_event("trade_created", user_id=1)
        db_session.rollback()

        assert db_session.query(AuditLog).count() == 0

    def test_unknown_severity_falls_back(self, db_session):
        entry = AuditSink(db_session).log_event("sweep", severity="apocalyptic")
        assert entry.severity == "medium"


class TestMemoryRateLimiter:
    """Tests for the in-process sliding window."""

    def test_allows_up_to_limit(self):
        limiter = MemoryRateLimiter(clock=lambda: 100.0)
        results = [limiter.check_rate_limit("trade_creation", 1, 3, 60) for _ in range(4)]
        assert results == [True, True, True, False]

    def test_window_slides(self):
        now = [0.0]
        limiter = MemoryRateLimiter(clock=lambda: now[0])

        assert limiter.check_rate_limit("trade_creation", 1, 1, 60)
        assert not limiter.check_rate_limit("trade_creation", 1, 1, 60)

        now[0] = 61.0
        assert limiter.check_rate_limit("trade_creation", 1, 1, 60)

    def test_counters_are_per_user_and_action(self):
        limiter = MemoryRateLimiter(clock=lambda: 0.0)
        assert limiter.check_rate_limit("trade_creation", 1, 1, 60)
        assert limiter.check_rate_limit("trade_creation", 2, 1, 60)
        assert limiter.check_rate_limit("trade_acceptance", 1, 1, 60)

    def test_rejected_calls_are_not_counted(self):
        now = [0.0]
        limiter = MemoryRateLimiter(clock=lambda: now[0])
        limiter.check_rate_limit("a", 1, 1, 60)

        now[0] = 30.0
        assert not limiter.check_rate_limit("a", 1, 1, 60)

        # only the first hit (t=0) is in the window, so it frees up at t=60
        now[0] = 60.5
        assert limiter.check_rate_limit("a", 1, 1, 60)


class TestRedisRateLimiter:
    """Tests for the shared fixed window (mocked Redis)."""

    def test_first_hit_sets_expiry(self):
        client = Mock()
        client.incr.return_value = 1
        limiter = RedisRateLimiter(client)

        assert limiter.check_rate_limit("trade_creation", 5, 10, 3600) is True
        client.incr.assert_called_once_with(rate_key("trade_creation", 5))
        client.expire.assert_called_once_with("ratelimit:trade_creation:5", 3600)

    def test_over_limit_rejected_and_undone(self):
        client = Mock()
        client.incr.return_value = 11
        limiter = RedisRateLimiter(client)

        assert limiter.check_rate_limit("trade_creation", 5, 10, 3600) is False
        client.expire.assert_not_called()
        client.decr.assert_called_once_with("ratelimit:trade_creation:5")


class TestBuildRateLimiter:
    """Tests for backend selection."""

    def test_memory_backend(self):
        config = SimpleNamespace(rate_limit_backend="memory")
        assert build_rate_limiter(config) is memory_rate_limiter

    def test_redis_backend(self):
        config = SimpleNamespace(rate_limit_backend="redis", redis_host="redis", redis_port=6380)
        with patch("tradepost.services.audit.redis.Redis") as mock_redis:
            limiter = build_rate_limiter(config)

        assert isinstance(limiter, RedisRateLimiter)
        mock_redis.assert_called_once_with(host="redis", port=6380, db=0, decode_responses=True)
