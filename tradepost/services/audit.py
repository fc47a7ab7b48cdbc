"""
Audit Sink and Rate Limiting
Write-only forensic log of trade activity, and per-user action throttles.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict, deque
from typing import Any, Deque, Dict, Optional, Tuple

import redis
from sqlalchemy.orm import Session

from tradepost.models.audit import AuditLog

logger = logging.getLogger(__name__)

SEVERITIES = ("low", "medium", "high", "critical")


class AuditSink:
    """Appends AuditLog rows into the caller's session (committed with it)."""

    def __init__(self, db: Session):
        self.db = db

    def log_event(
        self,
        action: str,
        user_id: Optional[int] = None,
        object_type: str = "trade",
        object_id: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        severity: str = "medium",
    ) -> AuditLog:
        if severity not in SEVERITIES:
            severity = "medium"

        entry = AuditLog(
            user_id=user_id,
            action=action,
            object_type=object_type,
            object_id=object_id,
            details=details,
            severity=severity,
        )
        self.db.add(entry)
        self.db.flush()

        logger.info("audit %s user=%s %s=%s", action, user_id, object_type, object_id)
        return entry


class MemoryRateLimiter:
    """
    Sliding-window limiter kept in process memory.

    Suitable for a single API process and for tests. A hit is only
    recorded when the action is allowed.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._hits: Dict[Tuple[str, int], Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def check_rate_limit(self, action: str, user_id: int, limit: int, window_seconds: int) -> bool:
        now = self._clock()
        with self._lock:
            hits = self._hits[(action, user_id)]
            while hits and hits[0] <= now - window_seconds:
                hits.popleft()
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


def rate_key(action: str, user_id: int) -> str:
    return f"ratelimit:{action}:{user_id}"


class RedisRateLimiter:
    """
    Fixed-window limiter shared by every API process through Redis.

    The first INCR in a window sets the key's expiry, so the counter
    resets on its own once the window has passed.
    """

    def __init__(self, client: redis.Redis):
        self.client = client

    def check_rate_limit(self, action: str, user_id: int, limit: int, window_seconds: int) -> bool:
        key = rate_key(action, user_id)
        count = self.client.incr(key)
        if count == 1:
            self.client.expire(key, window_seconds)
        if count > limit:
            # Undo the over-limit hit so rejected calls don't extend the block
            self.client.decr(key)
            return False
        return True


memory_rate_limiter = MemoryRateLimiter()


def build_rate_limiter(settings):
    """Pick the limiter backend configured in settings."""
    if settings.rate_limit_backend == "redis":
        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=0,
            decode_responses=True,
        )
        return RedisRateLimiter(client)
    return memory_rate_limiter
