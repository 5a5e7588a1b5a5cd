"""
Roster endpoints - invitations, direct adds, role changes and removals.
"""

import uuid
from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from collabhub.api.deps import (
    AfterCommit,
    Bus,
    CurrentUser,
    ProjectAccess,
    Registry,
)
from collabhub.api.v1.projects import member_response
from collabhub.kernel.errors import NotFound
from collabhub.kernel.models.activity import ActivityAction, EntityType
from collabhub.kernel.models.notification import NotificationType
from collabhub.kernel.models.project import MemberRole, ProjectMember
from collabhub.kernel.permissions.guard import Action
from collabhub.kernel.post_commit import CommittedAction
from collabhub.logging_config import get_logger
from collabhub.schemas.common import SuccessResponse
from collabhub.schemas.project import (
    AddMemberRequest,
    InvitationResponse,
    InviteRequest,
    MemberResponse,
    RoleChangeRequest,
)

logger = get_logger(__name__)

router = APIRouter()
invitations_router = APIRouter()

RosterReader = Annotated[List[ProjectMember], Depends(ProjectAccess(Action.READ_ROSTER))]
MemberAdder = Annotated[List[ProjectMember], Depends(ProjectAccess(Action.ADD_MEMBER))]


@router.get("", response_model=List[MemberResponse])
async def list_members(
    project_id: uuid.UUID,
    roster: RosterReader,
    registry: Registry,
):
    """Roster in order: owner first, then members in the order they were added."""
    return [member_response(entry, user) for entry, user in await registry.roster_with_users(project_id)]


@router.post("/invite", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def invite_member(
    project_id: uuid.UUID,
    data: InviteRequest,
    user: CurrentUser,
    registry: Registry,
    hook: AfterCommit,
):
    """Invite a user by email. Any accepted member may invite."""
    roster = await registry.invite(project_id, user.id, data.email, data.role)
    invitation = roster[-1]
    invitee = await registry.directory.get_user_by_id(invitation.user_id)
    project = await registry.get_project(project_id)

    await hook.run(CommittedAction(
        project_id=project_id,
        actor_id=user.id,
        action=ActivityAction.MEMBER_INVITED,
        details=invitee.email,
        entity_type=EntityType.MEMBER,
        entity_id=invitation.id,
        notification_type=NotificationType.INVITATION,
        message=f"You have been invited to join project: {project.name}",
        recipient_id=invitee.id,
    ))
    return member_response(invitation, invitee)


@router.post("", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    project_id: uuid.UUID,
    data: AddMemberRequest,
    roster: MemberAdder,
    user: CurrentUser,
    registry: Registry,
    hook: AfterCommit,
):
    """Add a user as an accepted member without an invitation (owner only)."""
    new_member = await registry.directory.get_user_by_email(data.email)
    if new_member is None:
        raise NotFound("User not found")

    roster = await registry.add_direct(project_id, user.id, new_member.id, data.role)
    entry = roster[-1]

    await hook.run(CommittedAction(
        project_id=project_id,
        actor_id=user.id,
        action=ActivityAction.MEMBER_ADDED,
        details=new_member.email,
        entity_type=EntityType.MEMBER,
        entity_id=entry.id,
        notification_type=NotificationType.MEMBER,
        message=f"New member {new_member.name} joined the project",
    ))
    return member_response(entry, new_member)


@router.post("/invites/{entry_id}/accept", response_model=MemberResponse)
async def accept_invitation(
    project_id: uuid.UUID,
    entry_id: uuid.UUID,
    user: CurrentUser,
    registry: Registry,
    hook: AfterCommit,
):
    """Accept an invitation addressed to the caller."""
    entry = await registry.accept_invite(project_id, entry_id, user.id)

    await hook.run(CommittedAction(
        project_id=project_id,
        actor_id=user.id,
        action=ActivityAction.INVITATION_ACCEPTED,
        details=user.email,
        entity_type=EntityType.MEMBER,
        entity_id=entry.id,
        notification_type=NotificationType.MEMBER,
        message=f"New member {user.name} joined the project",
    ))
    return member_response(entry, user)


@router.post("/invites/{entry_id}/reject", response_model=SuccessResponse)
async def reject_invitation(
    project_id: uuid.UUID,
    entry_id: uuid.UUID,
    user: CurrentUser,
    registry: Registry,
    hook: AfterCommit,
):
    """Decline an invitation addressed to the caller; the entry is removed."""
    entry = await registry.reject_invite(project_id, entry_id, user.id)

    await hook.run(CommittedAction(
        project_id=project_id,
        actor_id=user.id,
        action=ActivityAction.INVITATION_REJECTED,
        details=user.email,
        entity_type=EntityType.MEMBER,
        entity_id=entry.id,
    ))
    return SuccessResponse(message="Invitation rejected")


@router.patch("/{entry_id}", response_model=MemberResponse)
async def change_member_role(
    project_id: uuid.UUID,
    entry_id: uuid.UUID,
    data: RoleChangeRequest,
    user: CurrentUser,
    registry: Registry,
    hook: AfterCommit,
):
    """Switch a member between member and viewer (owner only)."""
    change = await registry.change_role(project_id, user.id, entry_id, data.role)
    member = await registry.directory.get_user_by_id(change.entry.user_id)

    if change.changed:
        project = await registry.get_project(project_id)
        new_role = MemberRole(change.entry.role).value
        await hook.run(CommittedAction(
            project_id=project_id,
            actor_id=user.id,
            action=ActivityAction.ROLE_CHANGED,
            details=f"{member.email}: {change.previous_role.value} -> {new_role}",
            entity_type=EntityType.MEMBER,
            entity_id=change.entry.id,
            notification_type=NotificationType.MEMBER,
            message=f"Your role in project {project.name} is now {new_role}",
            recipient_id=member.id,
        ))
    return member_response(change.entry, member)


@router.delete("/{entry_id}", response_model=SuccessResponse)
async def remove_member(
    project_id: uuid.UUID,
    entry_id: uuid.UUID,
    user: CurrentUser,
    registry: Registry,
    bus: Bus,
    hook: AfterCommit,
):
    """Remove a member or withdraw an invitation (owner only)."""
    entry = await registry.remove_member(project_id, user.id, entry_id)
    removed = await registry.directory.get_user_by_id(entry.user_id)

    evicted = bus.evict(project_id, entry.user_id)
    if evicted:
        logger.info(
            "Evicted removed member from project room",
            extra={"project_id": str(project_id), "user_id": str(entry.user_id), "connections": evicted},
        )

    await hook.run(CommittedAction(
        project_id=project_id,
        actor_id=user.id,
        action=ActivityAction.MEMBER_REMOVED,
        details=removed.email,
        entity_type=EntityType.MEMBER,
        entity_id=entry.id,
        notification_type=NotificationType.MEMBER,
        message=f"{removed.name} was removed from the project",
    ))
    return SuccessResponse(message="Member removed successfully")


@invitations_router.get("/invitations", response_model=List[InvitationResponse])
async def list_invitations(
    user: CurrentUser,
    registry: Registry,
):
    """The caller's pending invitations."""
    return [
        InvitationResponse(
            entry_id=entry.id,
            project_id=project.id,
            project_name=project.name,
            role=entry.role,
            invited_by=entry.invited_by,
        )
        for entry, project in await registry.pending_invitations(user.id)
    ]
