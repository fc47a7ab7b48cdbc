"""One-shot expiry sweep, for cron-style deployments that disable the in-process sweeper."""
from tradepost.core.config import settings
from tradepost.core.logging_config import configure_logging
from tradepost.db.session import SessionLocal
from tradepost.services.expiry_sweeper import run_sweep


def main() -> None:
    configure_logging(settings.log_level)
    expired = run_sweep(SessionLocal)
    print(f"expired {len(expired)} trade(s): {expired}")


if __name__ == "__main__":
    main()
