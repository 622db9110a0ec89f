"""
Notifications API Router
Endpoints for the caretaker notification inbox
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import models
from api.deps import get_db, get_current_account, services
from api.schemas.notification import (
    NotificationResponse,
    NotificationList,
    UnreadCountResponse,
    MarkAllReadResponse,
)


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=NotificationList)
async def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Notifications for the account, newest first
    """
    notification_service = services.get_notification_service()

    notifications = await notification_service.get_notifications(account.id, limit=limit, db=db)
    unread = await notification_service.get_unread_count(account.id, db=db)
    return NotificationList(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    notification_service = services.get_notification_service()
    return UnreadCountResponse(unread_count=await notification_service.get_unread_count(account.id, db=db))


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    notification_service = services.get_notification_service()
    return MarkAllReadResponse(updated=await notification_service.mark_all_as_read(account.id, db=db))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    notification_service = services.get_notification_service()
    return await notification_service.mark_as_read(account.id, notification_id, db=db)
