"""
Activity feed endpoint.
"""

import uuid
from typing import Annotated, List

from fastapi import APIRouter, Depends, Query

from collabhub.api.deps import DbSession, ProjectAccess
from collabhub.kernel.activity import ActivityLedger
from collabhub.kernel.models.project import ProjectMember
from collabhub.kernel.permissions.guard import Action
from collabhub.schemas.activity import ActivityResponse, ActorSummary

router = APIRouter()

ActivityReader = Annotated[List[ProjectMember], Depends(ProjectAccess(Action.READ_ACTIVITY))]


@router.get("/projects/{project_id}/activity", response_model=List[ActivityResponse])
async def get_activity(
    project_id: uuid.UUID,
    roster: ActivityReader,
    db: DbSession,
    limit: int = Query(50, ge=1, description="Capped at the configured feed limit"),
):
    """Most recent activity first."""
    entries = await ActivityLedger(db).query(project_id, limit=limit)
    return [
        ActivityResponse(
            actor=ActorSummary(name=item.actor_name, email=item.actor_email),
            action=item.entry.action,
            details=item.entry.details,
            entity_type=item.entry.entity_type,
            entity_id=item.entry.entity_id,
            created_at=item.created_at,
        )
        for item in entries
    ]
