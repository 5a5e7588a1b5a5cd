"""
Kernel Data Models

SQLAlchemy models for users, projects and their rosters, tasks, comments,
the activity ledger and notification inboxes.
"""

from collabhub.kernel.models.base import Base, TimestampMixin, SoftDeleteMixin, generate_uuid, utcnow
from collabhub.kernel.models.user import User
from collabhub.kernel.models.project import (
    Project,
    ProjectMember,
    MemberRole,
    MembershipStatus,
)
from collabhub.kernel.models.task import Task, TaskStatus, Comment, task_assignees
from collabhub.kernel.models.activity import ActivityEntry, ActivityAction, EntityType
from collabhub.kernel.models.notification import Notification, NotificationType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",
    "generate_uuid",
    "utcnow",
    # User
    "User",
    # Project & roster
    "Project",
    "ProjectMember",
    "MemberRole",
    "MembershipStatus",
    # Tasks
    "Task",
    "TaskStatus",
    "Comment",
    "task_assignees",
    # Activity ledger
    "ActivityEntry",
    "ActivityAction",
    "EntityType",
    # Notifications
    "Notification",
    "NotificationType",
]
