"""
Per-user notification inbox.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from collabhub.kernel.models.base import Base, generate_uuid, utcnow

if TYPE_CHECKING:
    from collabhub.kernel.models.user import User


class NotificationType(str, Enum):
    """Category of an inbox entry."""
    INVITATION = "invitation"
    PROJECT = "project"
    TASK = "task"
    COMMENT = "comment"
    MEMBER = "member"


class Notification(Base):
    """
    One inbox entry for one recipient.

    Created only by the fan-out engine; read state and deletion belong to
    the recipient.
    """

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    # No FK: a notice about a deleted project outlives it
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
    )

    type: Mapped[NotificationType] = mapped_column(
        String(20),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    read: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    recipient: Mapped["User"] = relationship(
        "User",
        back_populates="notifications",
    )

    __table_args__ = (
        Index("ix_notifications_user_time", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification {self.type} user={self.user_id} read={self.read}>"
