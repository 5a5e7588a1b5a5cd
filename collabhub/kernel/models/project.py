"""
Project and roster models.

The roster is an explicit arena: every membership entry is a row in
``project_members`` identified by its own id and ordered by ``position``.
Removing a member deletes the row; there are no tombstones.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from collabhub.kernel.models.base import Base, TimestampMixin, SoftDeleteMixin, generate_uuid

if TYPE_CHECKING:
    from collabhub.kernel.models.user import User
    from collabhub.kernel.models.task import Task


class MemberRole(str, Enum):
    """Role of a user inside one project."""
    OWNER = "owner"
    MEMBER = "member"
    VIEWER = "viewer"


class MembershipStatus(str, Enum):
    """Lifecycle state of a roster entry. Removal deletes the entry."""
    PENDING = "pending"
    ACCEPTED = "accepted"


class Project(Base, TimestampMixin, SoftDeleteMixin):
    """Top-level collaboration container."""

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # Fixed at creation
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # Relationships
    members: Mapped[List["ProjectMember"]] = relationship(
        "ProjectMember",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectMember.position",
    )
    tasks: Mapped[List["Task"]] = relationship(
        "Task",
        back_populates="project",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Project {self.name[:50]}>"


class ProjectMember(Base):
    """One membership entry of a project's roster."""

    __tablename__ = "project_members"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    role: Mapped[MemberRole] = mapped_column(
        String(20),
        default=MemberRole.MEMBER,
        nullable=False,
    )
    status: Mapped[MembershipStatus] = mapped_column(
        String(20),
        default=MembershipStatus.PENDING,
        nullable=False,
    )
    invited_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id"),
        nullable=False,
    )
    joined_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Roster order; new entries are appended at max + 1
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Relationships
    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="members",
    )
    user: Mapped["User"] = relationship(
        "User",
        back_populates="memberships",
        foreign_keys=[user_id],
    )

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )

    @property
    def is_accepted(self) -> bool:
        return self.status == MembershipStatus.ACCEPTED

    def __repr__(self) -> str:
        return f"<ProjectMember project={self.project_id} user={self.user_id} {self.role}/{self.status}>"
