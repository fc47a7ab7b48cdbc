"""
Expiry Sweeper
Background thread that expires stale pending trades on a fixed period.
"""
import logging
import threading
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from tradepost.services.trade_engine import build_trade_engine

logger = logging.getLogger(__name__)


def run_sweep(session_factory: Callable[[], Session]) -> List[int]:
    """Run one sweep in a fresh session and return the expired trade IDs."""
    db = session_factory()
    try:
        return build_trade_engine(db).sweep_expired()
    finally:
        db.close()


class ExpirySweeper:
    """
    Calls ``sweep_expired`` every ``interval_seconds`` until stopped.

    Each run uses its own session, so a failed run never affects the next.
    """

    def __init__(self, session_factory: Callable[[], Session], interval_seconds: int = 3600):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="expiry-sweeper", daemon=True)
        self._thread.start()
        logger.info("expiry sweeper started, interval=%ss", self.interval_seconds)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("expiry sweeper stopped")

    def run_once(self) -> List[int]:
        try:
            return run_sweep(self.session_factory)
        except Exception:
            # The loop must outlive any single failed run
            logger.exception("expiry sweep failed")
            return []

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_once()
