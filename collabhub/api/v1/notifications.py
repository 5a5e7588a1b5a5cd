"""
Notification inbox endpoints. Callers only ever see their own entries.
"""

import uuid
from typing import List

from fastapi import APIRouter

from collabhub.api.deps import CurrentUser, DbSession
from collabhub.kernel.notifications import NotificationInbox
from collabhub.schemas.activity import NotificationResponse
from collabhub.schemas.common import SuccessResponse

router = APIRouter()


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    user: CurrentUser,
    db: DbSession,
):
    """The caller's notifications, newest first."""
    notifications = await NotificationInbox(db).list_for(user.id)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.patch("/read-all", response_model=SuccessResponse)
async def mark_all_read(
    user: CurrentUser,
    db: DbSession,
):
    updated = await NotificationInbox(db).mark_all_read(user.id)
    await db.commit()
    return SuccessResponse(message="Notifications marked as read", data={"updated": updated})


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: uuid.UUID,
    user: CurrentUser,
    db: DbSession,
):
    notification = await NotificationInbox(db).mark_read(notification_id, user.id)
    await db.commit()
    return NotificationResponse.model_validate(notification)


@router.delete("/{notification_id}", response_model=SuccessResponse)
async def delete_notification(
    notification_id: uuid.UUID,
    user: CurrentUser,
    db: DbSession,
):
    await NotificationInbox(db).delete(notification_id, user.id)
    await db.commit()
    return SuccessResponse(message="Notification deleted")
