"""
Notification inbox - a recipient's view of and control over their entries.
"""

import uuid
from typing import List

from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.kernel.errors import Forbidden, NotFound
from collabhub.kernel.models.notification import Notification


class NotificationInbox:
    """Read, mark and delete the caller's own notifications."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for(self, user_id: uuid.UUID) -> List[Notification]:
        """All of the user's notifications, newest first; ties by id so reads are stable."""
        query = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(desc(Notification.created_at), desc(Notification.id))
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def mark_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> Notification:
        """Idempotent: an already-read notification is returned unchanged."""
        notification = await self._owned(notification_id, user_id)
        if not notification.read:
            notification.read = True
            await self.session.flush()
        return notification

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        """Mark every unread notification of the user as read; returns how many changed."""
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def delete(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> None:
        notification = await self._owned(notification_id, user_id)
        await self.session.delete(notification)
        await self.session.flush()

    async def _owned(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> Notification:
        notification = await self.session.get(Notification, notification_id)
        if notification is None:
            raise NotFound("Notification not found")
        if notification.user_id != user_id:
            raise Forbidden("Notification belongs to another user")
        return notification
