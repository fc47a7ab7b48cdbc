"""
Notification Service
Handles creating and managing user notifications
"""
import json
import logging
from datetime import datetime
from typing import List, Optional

import redis
from sqlalchemy.orm import Session
from sqlalchemy import select, and_, func

from tradepost.models.notification import Notification
from tradepost.core.message_broker import NOTIFICATIONS_CHANNEL, message_broker

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for managing notifications."""

    def __init__(self, db: Session):
        self.db = db

    def create_notification(
        self,
        user_id: int,
        notification_type: str,
        title: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Notification:
        """
        Create a new notification for a user.

        Args:
            user_id: User ID to notify
            notification_type: Type (TRADE, CURRENCY, ANNOUNCEMENT)
            title: Notification title
            message: Notification message
            data: Optional extra data as dict

        Returns:
            Created Notification object
        """
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            data=json.dumps(data, default=str) if data else None,
            is_read=False,
            created_at=datetime.utcnow(),
        )

        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)

        # Publish to message broker for real-time delivery
        try:
            message_broker.publish(NOTIFICATIONS_CHANNEL, {
                'user_id': user_id,
                'notification_id': notification.id,
                'type': notification_type,
                'title': title,
                'message': message,
            })
        except redis.RedisError as exc:
            logger.warning("notification %s stored but not published: %s", notification.id, exc)

        return notification

    def get_user_notifications(
        self,
        user_id: int,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Notification]:
        """
        Get notifications for a user.

        Args:
            user_id: User ID
            unread_only: If True, only return unread notifications
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of Notification objects
        """
        stmt = select(Notification).where(Notification.user_id == user_id)

        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))

        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(skip).limit(limit)

        return list(self.db.scalars(stmt).all())

    def mark_as_read(self, notification_id: int, user_id: int) -> Optional[Notification]:
        """
        Mark a notification as read.

        Returns:
            Updated Notification if found, None otherwise
        """
        stmt = select(Notification).where(
            and_(
                Notification.id == notification_id,
                Notification.user_id == user_id
            )
        )
        notification = self.db.scalar(stmt)

        if not notification:
            return None

        notification.is_read = True
        notification.read_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(notification)

        return notification

    def mark_all_as_read(self, user_id: int) -> int:
        """
        Mark all notifications as read for a user.

        Returns:
            Number of notifications updated
        """
        stmt = select(Notification).where(
            and_(
                Notification.user_id == user_id,
                Notification.is_read.is_(False)
            )
        )
        notifications = self.db.scalars(stmt).all()

        now = datetime.utcnow()
        for notification in notifications:
            notification.is_read = True
            notification.read_at = now

        self.db.commit()
        return len(notifications)

    def delete_notification(self, notification_id: int, user_id: int) -> bool:
        """
        Delete a notification.

        Returns:
            True if deleted, False if not found
        """
        stmt = select(Notification).where(
            and_(
                Notification.id == notification_id,
                Notification.user_id == user_id
            )
        )
        notification = self.db.scalar(stmt)

        if not notification:
            return False

        self.db.delete(notification)
        self.db.commit()
        return True

    def count_notifications(self, user_id: int) -> int:
        stmt = select(func.count(Notification.id)).where(Notification.user_id == user_id)
        return int(self.db.scalar(stmt) or 0)

    def get_unread_count(self, user_id: int) -> int:
        stmt = select(func.count(Notification.id)).where(
            and_(
                Notification.user_id == user_id,
                Notification.is_read.is_(False)
            )
        )
        return int(self.db.scalar(stmt) or 0)


# Event Handlers (called after a trade transition has been committed)

def handle_trade_created(db: Session, trade_data: dict) -> None:
    """Tell the recipient a new offer is waiting."""
    service = NotificationService(db)
    service.create_notification(
        user_id=trade_data['recipient_id'],
        notification_type='TRADE',
        title='New Trade Offer',
        message=f"{trade_data['requester_name']} sent you a trade offer (#{trade_data['trade_id']}).",
        data=trade_data
    )


def handle_trade_completed(db: Session, trade_data: dict) -> None:
    """Tell both parties the trade went through."""
    service = NotificationService(db)

    service.create_notification(
        user_id=trade_data['requester_id'],
        notification_type='TRADE',
        title='Trade Completed',
        message=f"{trade_data['recipient_name']} accepted your trade offer (#{trade_data['trade_id']}).",
        data=trade_data
    )

    service.create_notification(
        user_id=trade_data['recipient_id'],
        notification_type='TRADE',
        title='Trade Completed',
        message=f"Your trade with {trade_data['requester_name']} (#{trade_data['trade_id']}) is complete.",
        data=trade_data
    )


def handle_trade_declined(db: Session, trade_data: dict) -> None:
    """Tell the requester their offer was declined."""
    service = NotificationService(db)
    reason = trade_data.get('reason')
    message = f"{trade_data['recipient_name']} declined your trade offer (#{trade_data['trade_id']})."
    if reason:
        message += f" Reason: {reason}"
    service.create_notification(
        user_id=trade_data['requester_id'],
        notification_type='TRADE',
        title='Trade Declined',
        message=message,
        data=trade_data
    )


def handle_trade_cancelled(db: Session, trade_data: dict) -> None:
    """Tell the recipient the offer was withdrawn."""
    service = NotificationService(db)
    service.create_notification(
        user_id=trade_data['recipient_id'],
        notification_type='TRADE',
        title='Trade Cancelled',
        message=f"{trade_data['requester_name']} cancelled their trade offer (#{trade_data['trade_id']}).",
        data=trade_data
    )
