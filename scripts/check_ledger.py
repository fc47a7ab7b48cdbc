"""Reconcile every cached balance against its transaction log. Exits 1 on drift."""
import sys

from sqlalchemy import select

from tradepost.core.config import settings
from tradepost.core.logging_config import configure_logging
from tradepost.db.session import SessionLocal
from tradepost.models.currency import CurrencyBalance
from tradepost.services.currency_ledger import CurrencyLedger


def main() -> int:
    configure_logging(settings.log_level)
    db = SessionLocal()
    try:
        ledger = CurrencyLedger(db)
        rows = db.execute(select(CurrencyBalance.user_id, CurrencyBalance.currency_id)).all()

        drifted = 0
        for user_id, currency_id in rows:
            result = ledger.reconcile(user_id, currency_id)
            if not result.is_consistent:
                drifted += 1
                print(
                    f"[DRIFT] user={user_id} currency={currency_id} "
                    f"balance={result.balance} log={result.log_total} drift={result.drift}"
                )

        print(f"checked {len(rows)} balance(s), {drifted} drifted")
        return 1 if drifted else 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
