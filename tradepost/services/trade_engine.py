"""
Trade Engine
The trade state machine and the settlement that executes accepted trades.

Status flow: pending -> completed | declined | cancelled | expired.
Every terminal status is permanent. Transitions out of ``pending`` are
compare-and-set updates, so when two callers race on the same trade only
one of them wins and the other gets InvalidStatus.

The engine owns the unit of work: each public operation commits once on
success and rolls back on any failure. The ledgers it drives only flush.
"""
import logging
import re
from contextlib import contextmanager
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from sqlalchemy import select, update, func, case, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tradepost.core.config import settings
from tradepost.core.errors import (
    AlreadyReserved,
    CurrencyUnavailable,
    EmptyOffer,
    EmptyRequest,
    InsufficientCurrency,
    InsufficientItems,
    InternalError,
    InvalidNFT,
    InvalidStatus,
    InvalidUsers,
    ItemUnavailable,
    NonTradeable,
    PermissionDenied,
    RateLimited,
    SelfTrade,
    SettlementFailed,
    TradeExists,
    TradeExpired,
    TradeNotFound,
    TradepostError,
)
from tradepost.models.trade import (
    Trade, PENDING, COMPLETED, DECLINED, CANCELLED, EXPIRED, TRADE_STATUSES,
)
from tradepost.models.user import User
from tradepost.schemas.bundle import AssetBundle, CurrencyLine, ItemLine, TokenLine
from tradepost.schemas.trade import TradeStatistics
from tradepost.services.audit import AuditSink, build_rate_limiter
from tradepost.services.currency_ledger import CurrencyLedger
from tradepost.services.event_publisher import TradeNotifier
from tradepost.services.item_ledger import ItemLedger
from tradepost.services.token_registry import TokenRegistry
from tradepost.services.valuation import Valuator

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000

_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def sanitize_message(message: Optional[str]) -> str:
    """Strip markup and control characters from a free-text trade message."""
    if not message:
        return ""
    text = _TAG_RE.sub("", message)
    text = _CONTROL_RE.sub("", text)
    return text.strip()[:MAX_MESSAGE_LENGTH]


class TradeEngine:
    """
    Offers, validates, reserves, settles and expires trades.

    Args:
        db: Session shared with every collaborator
        currencies: Currency ledger
        tokens: Unique-token registry
        items: Item stock ledger
        audit: Audit sink
        rate_limiter: Anything with ``check_rate_limit(action, user_id, limit, window_seconds)``
        notifier: Optional post-commit notifier (TradeNotifier)
        config: Settings object (TTL, rate limits)
        clock: Returns the current naive UTC datetime
    """

    def __init__(
        self,
        db: Session,
        currencies: CurrencyLedger,
        tokens: TokenRegistry,
        items: ItemLedger,
        audit: AuditSink,
        rate_limiter,
        notifier: Optional[TradeNotifier] = None,
        config=settings,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.currencies = currencies
        self.tokens = tokens
        self.items = items
        self.audit = audit
        self.rate_limiter = rate_limiter
        self.notifier = notifier
        self.config = config
        self.clock = clock
        self.valuator = Valuator(db)

    # -----------------------------
    # Unit of work
    # -----------------------------

    @contextmanager
    def _unit_of_work(self, operation: str, **context):
        try:
            yield
            self.db.commit()
        except TradepostError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("%s failed on storage error, context=%s", operation, context)
            raise InternalError(details={"operation": operation}) from exc
        except Exception as exc:
            self.db.rollback()
            logger.exception("%s failed unexpectedly, context=%s", operation, context)
            raise InternalError(details={"operation": operation}) from exc

    def _notify(self, event: str, trade: Trade, **extra) -> None:
        if self.notifier is None:
            return
        requester = self.db.get(User, trade.requester_id)
        recipient = self.db.get(User, trade.recipient_id)
        payload = {
            "trade_id": trade.id,
            "requester_id": trade.requester_id,
            "recipient_id": trade.recipient_id,
            "requester_name": requester.name if requester else str(trade.requester_id),
            "recipient_name": recipient.name if recipient else str(trade.recipient_id),
            "status": trade.status,
        }
        payload.update(extra)
        self.notifier.notify(event, payload)

    def _check_rate(self, action: str, user_id: int, limit: int) -> None:
        allowed = self.rate_limiter.check_rate_limit(
            action, user_id, limit, self.config.rate_limit_window_seconds
        )
        if not allowed:
            logger.warning("rate limit hit: action=%s user=%s", action, user_id)
            self.audit.log_event(
                "rate_limit_exceeded",
                user_id=user_id,
                object_type="user",
                object_id=user_id,
                details={"action": action, "limit": limit},
                severity="high",
            )
            self.db.commit()
            raise RateLimited(details={"action": action, "limit": limit})

    # -----------------------------
    # Create
    # -----------------------------

    def create_trade(
        self,
        requester_id: int,
        recipient_id: int,
        offer: AssetBundle,
        request: AssetBundle,
        message: str = "",
    ) -> Trade:
        """
        Offer a trade from requester to recipient.

        Only the requester's side is checked for ownership here; the
        recipient's side is checked when they accept.

        Returns:
            The persisted pending Trade

        Raises:
            SelfTrade, InvalidUsers, RateLimited, EmptyOffer, EmptyRequest,
            InvalidNFT, NonTradeable, AlreadyReserved, InsufficientItems,
            InsufficientCurrency, TradeExists
        """
        context = {"requester_id": requester_id, "recipient_id": recipient_id}
        with self._unit_of_work("create_trade", **context):
            if requester_id == recipient_id:
                raise SelfTrade()

            if self.db.get(User, requester_id) is None or self.db.get(User, recipient_id) is None:
                raise InvalidUsers(details=context)

            self._check_rate("trade_creation", requester_id, self.config.trade_creation_limit)

            offer = offer.normalized()
            request = request.normalized()
            if offer.is_empty:
                raise EmptyOffer()
            if request.is_empty:
                raise EmptyRequest()

            offer = self._validate_offer(requester_id, offer)
            request = self._validate_request(request)

            if self._pending_between(requester_id, recipient_id) is not None:
                raise TradeExists(details=context)

            now = self.clock()
            trade = Trade(
                requester_id=requester_id,
                recipient_id=recipient_id,
                requester_offer=offer.to_document(),
                recipient_offer=request.to_document(),
                requester_value=self.valuator.bundle_value(offer),
                recipient_value=self.valuator.bundle_value(request),
                status=PENDING,
                message=sanitize_message(message) or None,
                expires_at=now + timedelta(days=self.config.trade_ttl_days),
                created_at=now,
                updated_at=now,
            )
            self.db.add(trade)
            self.db.flush()

            for line in offer.tokens:
                self.tokens.reserve(line.token_id, trade.id)
            for line in offer.items:
                self.items.reserve(requester_id, line.item_id, line.quantity, trade.id)

            self.audit.log_event(
                "trade_created",
                user_id=requester_id,
                object_id=trade.id,
                details={
                    "recipient_id": recipient_id,
                    "requester_value": str(trade.requester_value),
                    "recipient_value": str(trade.recipient_value),
                },
                severity="low",
            )

        logger.info("trade %s created: %s -> %s", trade.id, requester_id, recipient_id)
        self._notify("new_trade", trade)
        return trade

    def _validate_offer(self, user_id: int, bundle: AssetBundle) -> AssetBundle:
        """Check the requester can give everything offered; return amounts at currency precision."""
        for line in bundle.tokens:
            token = self.tokens.find(line.token_id)
            if token is None or token.owner_id != user_id:
                raise InvalidNFT(details={"token_id": line.token_id})
            if not token.is_tradeable:
                raise NonTradeable(f"Token {line.token_id} is not tradeable", details={"token_id": line.token_id})
            if token.is_reserved:
                raise AlreadyReserved(details={"token_id": line.token_id})

        for line in bundle.items:
            self._check_item_tradeable(line.item_id)
            available = self.items.available(user_id, line.item_id)
            if available < line.quantity:
                raise InsufficientItems(
                    details={"item_id": line.item_id, "available": available, "requested": line.quantity}
                )

        currencies = []
        for line in bundle.currencies:
            amount = self.currencies.normalize_amount(line.currency_id, line.amount)
            balance = self.currencies.get_balance(user_id, line.currency_id)
            if balance < amount:
                raise InsufficientCurrency(
                    details={"currency_id": line.currency_id, "balance": str(balance), "amount": str(amount)}
                )
            currencies.append(CurrencyLine(currency_id=line.currency_id, amount=amount))

        return AssetBundle(items=bundle.items, tokens=bundle.tokens, currencies=currencies)

    def _validate_request(self, bundle: AssetBundle) -> AssetBundle:
        """Round requested amounts; ownership is left to accept time."""
        currencies = [
            CurrencyLine(
                currency_id=line.currency_id,
                amount=self.currencies.normalize_amount(line.currency_id, line.amount),
            )
            for line in bundle.currencies
        ]
        return AssetBundle(items=bundle.items, tokens=bundle.tokens, currencies=currencies)

    def _check_item_tradeable(self, item_id: int) -> None:
        item = self.items.get_item(item_id)
        if item is None or not item.is_tradeable or not item.is_stackable:
            raise NonTradeable(f"Item {item_id} cannot be traded", details={"item_id": item_id})

    def _pending_between(self, user_a: int, user_b: int) -> Optional[Trade]:
        stmt = select(Trade).where(
            Trade.status == PENDING,
            or_(
                and_(Trade.requester_id == user_a, Trade.recipient_id == user_b),
                and_(Trade.requester_id == user_b, Trade.recipient_id == user_a),
            ),
        )
        return self.db.scalars(stmt).first()

    # -----------------------------
    # Transitions
    # -----------------------------

    def _load(self, trade_id: int) -> Trade:
        trade = self.db.get(Trade, trade_id)
        if trade is None:
            raise TradeNotFound(details={"trade_id": trade_id})
        return trade

    def _claim(self, trade: Trade, status: str, now: datetime, **values) -> bool:
        """Compare-and-set the trade out of pending. True if this caller won."""
        result = self.db.execute(
            update(Trade)
            .where(Trade.id == trade.id, Trade.status == PENDING)
            .values(status=status, updated_at=now, **values)
        )
        return result.rowcount == 1

    def _release(self, trade_id: int) -> None:
        self.tokens.release_by_trade(trade_id)
        self.items.release_by_trade(trade_id)

    def _guard(self, trade: Trade, actor_id: int, allowed_actor: int) -> None:
        if actor_id != allowed_actor:
            raise PermissionDenied(details={"trade_id": trade.id, "user_id": actor_id})
        if trade.status != PENDING:
            raise InvalidStatus(details={"trade_id": trade.id, "status": trade.status})

    def accept_trade(self, trade_id: int, user_id: int) -> Trade:
        """
        Accept a pending trade as its recipient and settle it.

        Raises:
            TradeNotFound, PermissionDenied, InvalidStatus, TradeExpired,
            RateLimited, NonTradeable, ItemUnavailable, CurrencyUnavailable,
            SettlementFailed
        """
        with self._unit_of_work("accept_trade", trade_id=trade_id, user_id=user_id):
            trade = self._load(trade_id)
            self._guard(trade, user_id, trade.recipient_id)

            now = self.clock()
            if now > trade.expires_at:
                if self._claim(trade, EXPIRED, now):
                    self._release(trade.id)
                    self.audit.log_event(
                        "trade_expired", user_id=user_id, object_id=trade.id,
                        details={"expired_at": trade.expires_at.isoformat()}, severity="low",
                    )
                    self.db.commit()
                    logger.info("trade %s expired on accept", trade.id)
                raise TradeExpired(details={"trade_id": trade.id})

            self._check_rate("trade_acceptance", user_id, self.config.trade_acceptance_limit)

            offer = AssetBundle.from_document(trade.requester_offer)
            request = AssetBundle.from_document(trade.recipient_offer)
            self._revalidate(trade, offer, request)

            if not self._claim(trade, COMPLETED, now, completed_at=now):
                raise InvalidStatus(details={"trade_id": trade.id})

            try:
                self._settle(trade, offer, request)
            except SettlementFailed as exc:
                self.db.rollback()
                logger.warning("trade %s settlement failed at %s: %s", trade_id, exc.details.get("step"), exc.details.get("cause"))
                self.audit.log_event(
                    "trade_settlement_failed", user_id=user_id, object_id=trade_id,
                    details=exc.details, severity="high",
                )
                self.db.commit()
                raise

            self._release(trade.id)
            self.audit.log_event(
                "trade_accepted",
                user_id=user_id,
                object_id=trade.id,
                details={"requester_id": trade.requester_id},
            )

        logger.info("trade %s completed", trade.id)
        self._notify("trade_completed", trade)
        return trade

    def _revalidate(self, trade: Trade, offer: AssetBundle, request: AssetBundle) -> None:
        """Both sides must still hold what they give. Failures leave the trade pending."""
        self._check_side_holdings(trade.requester_id, offer, trade.id)
        self._check_side_holdings(trade.recipient_id, request, trade.id)

    def _check_side_holdings(self, user_id: int, bundle: AssetBundle, trade_id: int) -> None:
        for line in bundle.tokens:
            token = self.tokens.find(line.token_id)
            if token is None or token.owner_id != user_id:
                raise ItemUnavailable(
                    f"Token {line.token_id} is no longer owned by user {user_id}",
                    details={"token_id": line.token_id, "user_id": user_id},
                )
            if not token.is_tradeable:
                raise NonTradeable(f"Token {line.token_id} is not tradeable", details={"token_id": line.token_id})
            if token.is_reserved and token.reserved_for_trade != trade_id:
                raise ItemUnavailable(
                    f"Token {line.token_id} is held by another trade",
                    details={"token_id": line.token_id, "reserved_for_trade": token.reserved_for_trade},
                )

        for line in bundle.items:
            self._check_item_tradeable(line.item_id)
            available = self.items.available(user_id, line.item_id, exclude_trade=trade_id)
            if available < line.quantity:
                raise ItemUnavailable(
                    details={
                        "item_id": line.item_id,
                        "user_id": user_id,
                        "available": available,
                        "requested": line.quantity,
                    }
                )

        for line in bundle.currencies:
            balance = self.currencies.get_balance(user_id, line.currency_id)
            if balance < line.amount:
                raise CurrencyUnavailable(
                    details={
                        "currency_id": line.currency_id,
                        "user_id": user_id,
                        "balance": str(balance),
                        "amount": str(line.amount),
                    }
                )

    def _settle(self, trade: Trade, offer: AssetBundle, request: AssetBundle) -> None:
        """
        Move every asset of both sides. Runs inside the accept transaction,
        so a failure at any step is undone by the caller's rollback.
        """
        requester, recipient = trade.requester_id, trade.recipient_id
        steps: List[Tuple[str, Callable[[], None]]] = [
            ("requester_tokens", lambda: self._move_tokens(offer.tokens, recipient, trade.id)),
            ("requester_items", lambda: self._move_items(offer.items, requester, recipient)),
            ("recipient_tokens", lambda: self._move_tokens(request.tokens, requester, trade.id)),
            ("recipient_items", lambda: self._move_items(request.items, recipient, requester)),
            ("requester_currencies", lambda: self._move_currencies(offer.currencies, requester, recipient, trade.id)),
            ("recipient_currencies", lambda: self._move_currencies(request.currencies, recipient, requester, trade.id)),
        ]
        for step, run in steps:
            try:
                run()
            except TradepostError as exc:
                raise SettlementFailed(
                    f"Trade execution failed: {exc.message}",
                    details={"trade_id": trade.id, "step": step, "cause": exc.code, **exc.details},
                ) from exc

    def _move_tokens(self, lines: List[TokenLine], to_user: int, trade_id: int) -> None:
        for line in lines:
            self.tokens.transfer(line.token_id, to_user, transfer_type="trade", trade_id=trade_id)

    def _move_items(self, lines: List[ItemLine], from_user: int, to_user: int) -> None:
        for line in lines:
            self.items.remove(from_user, line.item_id, line.quantity)
            self.items.add(to_user, line.item_id, line.quantity, acquired_method="trade")

    def _move_currencies(self, lines: List[CurrencyLine], from_user: int, to_user: int, trade_id: int) -> None:
        for line in lines:
            self.currencies.transfer(
                from_user, to_user, line.currency_id, line.amount,
                reference_type="trade",
                reference_id=trade_id,
                description=f"Trade #{trade_id}",
            )

    def decline_trade(self, trade_id: int, user_id: int, reason: str = "") -> Trade:
        """Recipient turns the offer down."""
        reason = sanitize_message(reason)
        with self._unit_of_work("decline_trade", trade_id=trade_id, user_id=user_id):
            trade = self._load(trade_id)
            self._guard(trade, user_id, trade.recipient_id)

            if not self._claim(trade, DECLINED, self.clock(), decline_reason=reason or None):
                raise InvalidStatus(details={"trade_id": trade.id})
            self._release(trade.id)
            self.audit.log_event(
                "trade_declined", user_id=user_id, object_id=trade.id,
                details={"reason": reason}, severity="low",
            )

        logger.info("trade %s declined", trade.id)
        self._notify("trade_declined", trade, reason=reason)
        return trade

    def cancel_trade(self, trade_id: int, user_id: int) -> Trade:
        """Requester withdraws the offer."""
        with self._unit_of_work("cancel_trade", trade_id=trade_id, user_id=user_id):
            trade = self._load(trade_id)
            self._guard(trade, user_id, trade.requester_id)

            if not self._claim(trade, CANCELLED, self.clock()):
                raise InvalidStatus(details={"trade_id": trade.id})
            self._release(trade.id)
            self.audit.log_event("trade_cancelled", user_id=user_id, object_id=trade.id, severity="low")

        logger.info("trade %s cancelled", trade.id)
        self._notify("trade_cancelled", trade)
        return trade

    # -----------------------------
    # Expiry sweep
    # -----------------------------

    def sweep_expired(self) -> List[int]:
        """
        Expire every pending trade past its expires_at.

        Each trade is claimed with a compare-and-set, so the sweep is safe
        to run alongside user actions and a second run finds nothing.

        Returns:
            IDs of the trades expired by this run
        """
        now = self.clock()
        expired: List[int] = []
        with self._unit_of_work("sweep_expired"):
            candidates = self.db.scalars(
                select(Trade.id).where(Trade.status == PENDING, Trade.expires_at < now)
            ).all()

            for trade_id in candidates:
                result = self.db.execute(
                    update(Trade)
                    .where(Trade.id == trade_id, Trade.status == PENDING, Trade.expires_at < now)
                    .values(status=EXPIRED, updated_at=now)
                )
                if result.rowcount == 1:
                    self._release(trade_id)
                    expired.append(trade_id)

            if expired:
                self.audit.log_event(
                    "trades_expired",
                    object_type="system",
                    details={"count": len(expired), "trade_ids": expired},
                    severity="low",
                )

        if expired:
            logger.info("expiry sweep expired %d trade(s)", len(expired))
        return expired

    # -----------------------------
    # Queries
    # -----------------------------

    def get_trade(self, trade_id: int, user_id: Optional[int] = None) -> Trade:
        """Load a trade; when ``user_id`` is given it must be one of the parties."""
        trade = self._load(trade_id)
        if user_id is not None and not trade.involves(user_id):
            raise PermissionDenied(details={"trade_id": trade_id, "user_id": user_id})
        return trade

    def list_user_trades(
        self,
        user_id: int,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Trade]:
        stmt = select(Trade).where(or_(Trade.requester_id == user_id, Trade.recipient_id == user_id))
        if status is not None:
            if status not in TRADE_STATUSES:
                raise ValueError(f"Unknown trade status: {status}")
            stmt = stmt.where(Trade.status == status)
        stmt = stmt.order_by(Trade.created_at.desc(), Trade.id.desc()).offset(offset).limit(limit)
        return list(self.db.scalars(stmt).all())

    def trade_statistics(self, user_id: Optional[int] = None) -> TradeStatistics:
        def count_status(status: str):
            return func.coalesce(func.sum(case((Trade.status == status, 1), else_=0)), 0)

        stmt = select(
            func.count(Trade.id),
            count_status(COMPLETED),
            count_status(PENDING),
            count_status(DECLINED),
            count_status(CANCELLED),
            count_status(EXPIRED),
            func.avg(Trade.requester_value + Trade.recipient_value),
        )
        if user_id is not None:
            stmt = stmt.where(or_(Trade.requester_id == user_id, Trade.recipient_id == user_id))

        total, completed, pending, declined, cancelled, expired, avg_value = self.db.execute(stmt).one()
        avg = Decimal(str(avg_value)) if avg_value is not None else Decimal("0")
        return TradeStatistics(
            total_trades=total,
            completed_trades=completed,
            pending_trades=pending,
            declined_trades=declined,
            cancelled_trades=cancelled,
            expired_trades=expired,
            avg_trade_value=avg.quantize(Decimal("0.01")),
        )


def build_trade_engine(db: Session, config=settings) -> TradeEngine:
    """Wire a TradeEngine with the default collaborators for ``db``."""
    return TradeEngine(
        db,
        currencies=CurrencyLedger(db),
        tokens=TokenRegistry(db),
        items=ItemLedger(db),
        audit=AuditSink(db),
        rate_limiter=build_rate_limiter(config),
        notifier=TradeNotifier(db, enabled=config.notifications_enabled),
        config=config,
    )
