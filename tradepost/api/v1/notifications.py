"""
Notification API Endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from tradepost.core.deps import get_db, get_current_user
from tradepost.models.user import User
from tradepost.services.notification_service import NotificationService
from tradepost.schemas.notification import (
    NotificationResponse,
    NotificationListResponse,
)

router = APIRouter()


@router.get("/", response_model=NotificationListResponse)
def get_notifications(
    unread_only: bool = Query(False, description="Only return unread notifications"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(50, ge=1, le=100, description="Maximum number of records"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Get notifications for the current user.

    - **unread_only**: Filter for unread notifications only
    - **skip**: Pagination offset
    - **limit**: Maximum results per page
    """
    service = NotificationService(db)

    notifications = service.get_user_notifications(
        user_id=current_user.id,
        unread_only=unread_only,
        skip=skip,
        limit=limit,
    )

    return NotificationListResponse(
        total=service.count_notifications(current_user.id),
        unread_count=service.get_unread_count(current_user.id),
        notifications=notifications,
    )


@router.get("/unread-count")
def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = NotificationService(db)
    count = service.get_unread_count(current_user.id)

    return {"user_id": current_user.id, "unread_count": count}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_as_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = NotificationService(db)

    notification = service.mark_as_read(notification_id, current_user.id)

    if not notification:
        raise HTTPException(
            status_code=404,
            detail="Notification not found or you don't have permission",
        )

    return notification


@router.post("/mark-all-read")
def mark_all_as_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = NotificationService(db)
    count = service.mark_all_as_read(current_user.id)

    return {"user_id": current_user.id, "marked_read": count}


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = NotificationService(db)

    deleted = service.delete_notification(notification_id, current_user.id)

    if not deleted:
        raise HTTPException(
            status_code=404,
            detail="Notification not found or you don't have permission",
        )

    return {"message": "Notification deleted successfully"}
