"""
Activity ledger - append-only per-project history.

The ledger exposes exactly two operations: ``append`` and ``query``. There is
no update or delete path; entries are immutable once written.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.config import get_settings
from collabhub.kernel.models.activity import ActivityAction, ActivityEntry, EntityType
from collabhub.kernel.models.user import User


@dataclass(frozen=True)
class ResolvedActivity:
    """A ledger entry with the actor's display fields attached."""

    entry: ActivityEntry
    actor_name: str
    actor_email: str

    @property
    def created_at(self) -> datetime:
        return self.entry.created_at


class ActivityLedger:
    """
    Service for the project activity feed.

    Usage:
        ledger = ActivityLedger(session)
        await ledger.append(
            project_id=project.id,
            actor_id=user.id,
            action=ActivityAction.TASK_CREATED,
            details=task.title,
            entity_type=EntityType.TASK,
            entity_id=task.id,
        )
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(
        self,
        project_id: uuid.UUID,
        actor_id: uuid.UUID,
        action: ActivityAction,
        details: str,
        entity_type: EntityType,
        entity_id: Optional[uuid.UUID] = None,
    ) -> ActivityEntry:
        """
        Write one entry. The caller owns the transaction and commits it.

        Args:
            project_id: Project the action happened in
            actor_id: User who performed the action
            action: Tracked verb
            details: Free text shown next to the verb (a title, an email, ...)
            entity_type: Kind of entity the action touched
            entity_id: The touched entity, when it has an id
        """
        entry = ActivityEntry(
            project_id=project_id,
            user_id=actor_id,
            action=action,
            details=details,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def query(self, project_id: uuid.UUID, limit: int = 50) -> List[ResolvedActivity]:
        """
        Most recent entries first, never more than ``limit``.

        Entries sharing a timestamp are ordered by insertion sequence, newest
        first, so repeated reads of an unchanged ledger return the same order.
        """
        limit = max(1, min(limit, get_settings().activity_feed_limit))
        query = (
            select(ActivityEntry, User)
            .join(User, ActivityEntry.user_id == User.id)
            .where(ActivityEntry.project_id == project_id)
            .order_by(desc(ActivityEntry.created_at), desc(ActivityEntry.id))
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [
            ResolvedActivity(entry=entry, actor_name=actor.name, actor_email=actor.email)
            for entry, actor in result.all()
        ]
