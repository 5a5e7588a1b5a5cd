"""
Project endpoints.
"""

import uuid
from typing import List, Sequence, Tuple

from fastapi import APIRouter, status

from collabhub.api.deps import (
    AfterCommit,
    CurrentUser,
    DbSession,
    Registry,
    RequireMember,
    RequireOwner,
)
from collabhub.kernel.models.activity import ActivityAction, EntityType
from collabhub.kernel.models.base import utcnow
from collabhub.kernel.models.notification import NotificationType
from collabhub.kernel.models.project import MemberRole, Project, ProjectMember
from collabhub.kernel.models.user import User
from collabhub.kernel.post_commit import CommittedAction
from collabhub.realtime.events import ProjectCreated, ProjectDeleted, ProjectUpdated
from collabhub.schemas.common import SuccessResponse
from collabhub.schemas.project import (
    MemberResponse,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
    UserSummary,
)

router = APIRouter()


def member_response(entry: ProjectMember, user: User) -> MemberResponse:
    return MemberResponse(
        entry_id=entry.id,
        user=UserSummary.model_validate(user),
        role=entry.role,
        status=entry.status,
        invited_by=entry.invited_by,
        joined_at=entry.joined_at,
    )


def project_response(
    project: Project,
    members: Sequence[Tuple[ProjectMember, User]],
) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        name=project.name,
        description=project.description,
        owner_id=project.owner_id,
        members=[member_response(entry, user) for entry, user in members],
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    user: CurrentUser,
    registry: Registry,
    hook: AfterCommit,
):
    """Create a project; the caller becomes its owner."""
    project = await registry.create_project(user.id, data.name, data.description)
    response = project_response(project, await registry.roster_with_users(project.id))

    await hook.run(CommittedAction(
        project_id=project.id,
        actor_id=user.id,
        action=ActivityAction.PROJECT_CREATED,
        details=project.name,
        entity_type=EntityType.PROJECT,
        entity_id=project.id,
        event=ProjectCreated(project=response),
    ))
    return response


@router.get("", response_model=List[ProjectListResponse])
async def list_projects(
    user: CurrentUser,
    registry: Registry,
):
    """Projects the caller owns, belongs to or is invited to."""
    return [
        ProjectListResponse(
            id=project.id,
            name=project.name,
            description=project.description,
            owner_id=project.owner_id,
            role=entry.role,
            status=entry.status,
            is_owner=entry.role == MemberRole.OWNER,
            updated_at=project.updated_at,
        )
        for project, entry in await registry.projects_for(user.id)
    ]


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: uuid.UUID,
    roster: RequireMember,
    registry: Registry,
):
    """Get a project with its roster."""
    project = await registry.get_project(project_id)
    return project_response(project, await registry.roster_with_users(project_id))


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: uuid.UUID,
    data: ProjectUpdate,
    roster: RequireOwner,
    user: CurrentUser,
    db: DbSession,
    registry: Registry,
    hook: AfterCommit,
):
    """Rename or re-describe a project (owner only)."""
    project = await registry.get_project(project_id)

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(project, field, value)
    await db.commit()

    response = project_response(project, await registry.roster_with_users(project_id))
    await hook.run(CommittedAction(
        project_id=project.id,
        actor_id=user.id,
        action=ActivityAction.PROJECT_UPDATED,
        details=project.name,
        entity_type=EntityType.PROJECT,
        entity_id=project.id,
        notification_type=NotificationType.PROJECT,
        message=f"Project updated: {project.name}",
        event=ProjectUpdated(project=response),
    ))
    return response


@router.delete("/{project_id}", response_model=SuccessResponse)
async def delete_project(
    project_id: uuid.UUID,
    roster: RequireOwner,
    user: CurrentUser,
    db: DbSession,
    registry: Registry,
    hook: AfterCommit,
):
    """Soft delete a project (owner only). Members are told before it disappears."""
    project = await registry.get_project(project_id)
    project.deleted_at = utcnow()
    await db.commit()

    await hook.run(CommittedAction(
        project_id=project.id,
        actor_id=user.id,
        action=ActivityAction.PROJECT_DELETED,
        details=project.name,
        entity_type=EntityType.PROJECT,
        entity_id=project.id,
        notification_type=NotificationType.PROJECT,
        message=f"Project deleted: {project.name}",
        event=ProjectDeleted(project_id=project.id),
    ))
    return SuccessResponse(message="Project deleted successfully")
