"""
Notification fan-out engine.

Turns one committed mutation into one inbox entry per affected member.
Recipients are resolved from the roster as committed *after* the mutation,
so members added by it are included and members removed by it are not.

Delivery contract: at-least-once per recipient, fire-and-forget. Each
notification is written in its own transaction; a failed write is logged and
the loop moves on to the next recipient. Nothing is retried and nothing is
rolled back when only some recipients were reached.
"""

import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collabhub.kernel.models.notification import Notification, NotificationType
from collabhub.kernel.models.project import MembershipStatus, ProjectMember
from collabhub.kernel.models.user import User
from collabhub.logging_config import get_logger

logger = get_logger(__name__)

MessageBuilder = Callable[[User], str]


@dataclass
class FanoutResult:
    """Outcome of one fan-out."""

    created: List[uuid.UUID] = field(default_factory=list)
    failed: List[uuid.UUID] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.created) + len(self.failed)


def render_message(message: Union[str, MessageBuilder], recipient: User) -> str:
    return message(recipient) if callable(message) else message


class FanoutEngine:
    """
    Creates notifications for project members.

    Usage:
        engine = FanoutEngine(async_session_maker)
        await engine.trigger(
            project_id,
            exclude_user_id=actor.id,
            notification_type=NotificationType.TASK,
            message=f"Task created: {task.title}",
        )
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def trigger(
        self,
        project_id: uuid.UUID,
        exclude_user_id: Optional[uuid.UUID],
        notification_type: NotificationType,
        message: Union[str, MessageBuilder],
    ) -> FanoutResult:
        """Notify every accepted member of the project except ``exclude_user_id``."""
        recipients = [
            user for user in await self._accepted_members(project_id)
            if user.id != exclude_user_id
        ]

        result = FanoutResult()
        for recipient in recipients:
            try:
                await self._create(
                    recipient.id,
                    notification_type,
                    render_message(message, recipient),
                    project_id,
                )
            except Exception:
                logger.exception(
                    "Notification write failed; continuing fan-out",
                    extra={"project_id": str(project_id), "recipient_id": str(recipient.id)},
                )
                result.failed.append(recipient.id)
            else:
                result.created.append(recipient.id)

        logger.debug(
            "Fan-out finished",
            extra={
                "project_id": str(project_id),
                "type": notification_type.value,
                "created_count": len(result.created),
                "failed_count": len(result.failed),
            },
        )
        return result

    async def notify(
        self,
        recipient_id: uuid.UUID,
        notification_type: NotificationType,
        message: str,
        project_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        """Write a single inbox entry for one user, member or not."""
        return await self._create(recipient_id, notification_type, message, project_id)

    async def _accepted_members(self, project_id: uuid.UUID) -> List[User]:
        async with self.session_factory() as session:
            query = (
                select(User)
                .join(ProjectMember, ProjectMember.user_id == User.id)
                .where(
                    ProjectMember.project_id == project_id,
                    ProjectMember.status == MembershipStatus.ACCEPTED,
                )
                .order_by(ProjectMember.position)
            )
            result = await session.execute(query)
            return list(result.scalars().all())

    async def _create(
        self,
        recipient_id: uuid.UUID,
        notification_type: NotificationType,
        message: str,
        project_id: Optional[uuid.UUID],
    ) -> Notification:
        async with self.session_factory() as session:
            notification = Notification(
                user_id=recipient_id,
                project_id=project_id,
                type=notification_type,
                message=message,
            )
            session.add(notification)
            await session.commit()
            return notification
