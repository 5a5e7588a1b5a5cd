"""
Best-effort post-commit hook.

Runs the side effects of a mutation that has *already been committed*:

1. append the activity entry (own transaction),
2. notify affected users (one transaction per recipient),
3. publish the live-update event to the project's room.

This is deliberately not a transaction. Each step is attempted
independently; a failure is logged, recorded on the returned report and
never raised, so the caller still reports the committed mutation as a
success. Steps 1 and 2 are awaited and have hit the database by the time
``run`` returns. Step 3 only enqueues on subscriber connections and never
waits on delivery.
"""

import uuid
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collabhub.kernel.activity.ledger import ActivityLedger
from collabhub.kernel.models.activity import ActivityAction, EntityType
from collabhub.kernel.models.notification import NotificationType
from collabhub.kernel.notifications.fanout import FanoutEngine, MessageBuilder
from collabhub.logging_config import get_logger
from collabhub.realtime.bus import EventBus
from collabhub.realtime.events import RealtimeEvent

logger = get_logger(__name__)


@dataclass
class CommittedAction:
    """
    Description of a committed mutation and the side effects it calls for.

    ``notification_type``/``message`` enable notifications. Without
    ``recipient_id`` they fan out to every accepted member except the actor;
    with it a single direct notice is written instead, and ``message`` must
    be a plain string.
    """

    project_id: uuid.UUID
    actor_id: uuid.UUID
    action: ActivityAction
    details: str
    entity_type: EntityType
    entity_id: Optional[uuid.UUID] = None
    notification_type: Optional[NotificationType] = None
    message: Optional[Union[str, MessageBuilder]] = None
    recipient_id: Optional[uuid.UUID] = None
    event: Optional[RealtimeEvent] = None


@dataclass
class PostCommitReport:
    """What the side effects achieved. Informational only."""

    activity_recorded: bool = False
    notifications_created: int = 0
    notifications_failed: int = 0
    fanout_aborted: bool = False
    connections_reached: int = 0
    publish_failed: bool = False


class PostCommitHook:
    """
    Usage:
        hook = PostCommitHook(async_session_maker, bus)
        await hook.run(CommittedAction(
            project_id=project.id,
            actor_id=user.id,
            action=ActivityAction.TASK_CREATED,
            details=task.title,
            entity_type=EntityType.TASK,
            entity_id=task.id,
            notification_type=NotificationType.TASK,
            message=f"Task created: {task.title}",
            event=TaskCreated(task=TaskResponse.model_validate(task)),
        ))
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], bus: EventBus):
        self.session_factory = session_factory
        self.bus = bus
        self.fanout = FanoutEngine(session_factory)

    async def run(self, action: CommittedAction) -> PostCommitReport:
        report = PostCommitReport()
        report.activity_recorded = await self._record(action)
        if action.notification_type is not None and action.message is not None:
            await self._notify(action, report)
        if action.event is not None:
            self._publish(action, report)
        return report

    async def _record(self, action: CommittedAction) -> bool:
        try:
            async with self.session_factory() as session:
                await ActivityLedger(session).append(
                    project_id=action.project_id,
                    actor_id=action.actor_id,
                    action=action.action,
                    details=action.details,
                    entity_type=action.entity_type,
                    entity_id=action.entity_id,
                )
                await session.commit()
        except Exception:
            logger.exception(
                "Activity append failed after commit",
                extra={"project_id": str(action.project_id), "action": action.action.value},
            )
            return False
        return True

    async def _notify(self, action: CommittedAction, report: PostCommitReport) -> None:
        try:
            if action.recipient_id is not None:
                await self.fanout.notify(
                    action.recipient_id,
                    action.notification_type,
                    action.message,
                    project_id=action.project_id,
                )
                report.notifications_created = 1
                return

            result = await self.fanout.trigger(
                action.project_id,
                exclude_user_id=action.actor_id,
                notification_type=action.notification_type,
                message=action.message,
            )
        except Exception:
            logger.exception(
                "Notification fan-out aborted after commit",
                extra={"project_id": str(action.project_id), "action": action.action.value},
            )
            report.fanout_aborted = True
            return

        report.notifications_created = len(result.created)
        report.notifications_failed = len(result.failed)

    def _publish(self, action: CommittedAction, report: PostCommitReport) -> None:
        try:
            report.connections_reached = self.bus.publish(action.project_id, action.event)
        except Exception:
            logger.warning(
                "Realtime publish failed",
                exc_info=True,
                extra={"project_id": str(action.project_id), "event_type": action.event.type},
            )
            report.publish_failed = True
