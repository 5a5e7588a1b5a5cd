"""
Append-only activity ledger.

Rows are written once and never updated or deleted by the application.
The integer primary key is the insertion sequence and breaks ties between
entries created in the same instant.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from collabhub.kernel.models.base import Base, utcnow


class ActivityAction(str, Enum):
    """Tracked verbs, rendered as-is in the activity feed."""

    # Project
    PROJECT_CREATED = "Created project"
    PROJECT_UPDATED = "Updated project"
    PROJECT_DELETED = "Deleted project"

    # Roster
    MEMBER_ADDED = "Added member"
    MEMBER_REMOVED = "Removed member"
    MEMBER_INVITED = "Invited member"
    INVITATION_ACCEPTED = "Accepted invitation"
    INVITATION_REJECTED = "Rejected invitation"
    ROLE_CHANGED = "Changed role"

    # Tasks
    TASK_CREATED = "Created task"
    TASK_UPDATED = "Updated task"
    TASK_DELETED = "Deleted task"
    STATUS_UPDATED = "Updated status"

    # Comments
    COMMENT_ADDED = "Added comment"


class EntityType(str, Enum):
    """Kind of entity an activity entry points at."""
    PROJECT = "project"
    TASK = "task"
    MEMBER = "member"
    COMMENT = "comment"


class ActivityEntry(Base):
    """One immutable record of something that happened in a project."""

    __tablename__ = "activity_entries"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Actor
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    action: Mapped[ActivityAction] = mapped_column(
        String(50),
        nullable=False,
    )
    details: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    entity_type: Mapped[EntityType] = mapped_column(
        String(20),
        nullable=False,
    )
    entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
    )

    # Set client-side so ordering keeps sub-second precision on SQLite
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_activity_entries_project_time", "project_id", "created_at", "id"),
    )

    def __repr__(self) -> str:
        return f"<ActivityEntry {self.action} project={self.project_id}>"
