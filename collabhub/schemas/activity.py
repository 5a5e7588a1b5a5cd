"""
Activity feed and notification schemas.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from collabhub.kernel.models.activity import ActivityAction, EntityType
from collabhub.kernel.models.notification import NotificationType


class ActorSummary(BaseModel):
    """Display fields of the user who performed an action."""

    name: str
    email: str


class ActivityResponse(BaseModel):
    """One activity feed entry."""

    actor: ActorSummary
    action: ActivityAction
    details: str
    entity_type: EntityType
    entity_id: Optional[uuid.UUID]
    created_at: datetime


class NotificationResponse(BaseModel):
    """One inbox entry."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    type: NotificationType
    message: str
    read: bool
    project_id: Optional[uuid.UUID] = None
    created_at: datetime
