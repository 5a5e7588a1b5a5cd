"""
Membership registry - owns every project's roster.

Every roster mutation runs under the project's lock: the roster is re-read
inside the lock, validated, changed and committed before the lock is
released, so two writers on the same project can never both act on a stale
roster. Guard and precondition failures raise before anything is written.
"""

import uuid
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.kernel.errors import Conflict, InvariantViolation, NotFound
from collabhub.kernel.identity.directory import UserDirectory
from collabhub.kernel.membership.locks import ProjectLocks
from collabhub.kernel.models.base import utcnow
from collabhub.kernel.models.project import MemberRole, MembershipStatus, Project, ProjectMember
from collabhub.kernel.models.task import Task, task_assignees
from collabhub.kernel.models.user import User
from collabhub.kernel.permissions import guard
from collabhub.kernel.permissions.guard import Action
from collabhub.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class RoleChange:
    """Result of an owner-forced role change."""

    entry: ProjectMember
    previous_role: MemberRole

    @property
    def changed(self) -> bool:
        return self.entry.role != self.previous_role


class MembershipRegistry:
    """
    Roster operations for projects.

    Usage:
        registry = MembershipRegistry(session, locks)
        roster = await registry.invite(project.id, owner.id, "alice@example.com")
        invitation = roster[-1]
    """

    def __init__(self, session: AsyncSession, locks: Optional[ProjectLocks] = None):
        self.session = session
        self.locks = locks or ProjectLocks()
        self.directory = UserDirectory(session)

    # Reads

    async def get_project(self, project_id: uuid.UUID) -> Project:
        """Return a live project or raise ``NotFound``."""
        query = select(Project).where(
            Project.id == project_id,
            Project.deleted_at.is_(None),
        )
        result = await self.session.execute(query)
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFound("Project not found")
        return project

    async def roster(self, project_id: uuid.UUID) -> List[ProjectMember]:
        """Current roster in order, always reloaded from the database."""
        query = (
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.position)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def roster_with_users(self, project_id: uuid.UUID) -> List[Tuple[ProjectMember, User]]:
        """Roster entries joined with the user each one references."""
        query = (
            select(ProjectMember, User)
            .join(User, ProjectMember.user_id == User.id)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.position)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return [(entry, user) for entry, user in result.all()]

    async def projects_for(self, user_id: uuid.UUID) -> List[Tuple[Project, ProjectMember]]:
        """Live projects in which the user holds any entry, most recently updated first."""
        query = (
            select(Project, ProjectMember)
            .join(ProjectMember, ProjectMember.project_id == Project.id)
            .where(
                ProjectMember.user_id == user_id,
                Project.deleted_at.is_(None),
            )
            .order_by(Project.updated_at.desc())
        )
        result = await self.session.execute(query)
        return [(project, entry) for project, entry in result.all()]

    async def pending_invitations(self, user_id: uuid.UUID) -> List[Tuple[ProjectMember, Project]]:
        """The user's unanswered invitations across all live projects."""
        query = (
            select(ProjectMember, Project)
            .join(Project, ProjectMember.project_id == Project.id)
            .where(
                ProjectMember.user_id == user_id,
                ProjectMember.status == MembershipStatus.PENDING,
                Project.deleted_at.is_(None),
            )
            .order_by(Project.name)
        )
        result = await self.session.execute(query)
        return [(entry, project) for entry, project in result.all()]

    # Mutations

    async def create_project(
        self,
        owner_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
    ) -> Project:
        """Create a project whose roster starts with its single, accepted Owner entry."""
        project = Project(name=name, description=description, owner_id=owner_id)
        self.session.add(project)
        await self.session.flush()

        self.session.add(ProjectMember(
            project_id=project.id,
            user_id=owner_id,
            role=MemberRole.OWNER,
            status=MembershipStatus.ACCEPTED,
            invited_by=owner_id,
            joined_at=utcnow(),
            position=0,
        ))
        await self._commit()
        await self.session.refresh(project)

        logger.info("Project created", extra={"project_id": str(project.id), "owner_id": str(owner_id)})
        return project

    async def invite(
        self,
        project_id: uuid.UUID,
        inviter_id: uuid.UUID,
        email: str,
        role: MemberRole = MemberRole.MEMBER,
    ) -> List[ProjectMember]:
        """
        Invite a user by email.

        Appends a pending entry and returns the updated roster, whose last
        element is the new invitation.
        """
        _reject_owner_role(role)
        async with self.locks.hold(project_id):
            await self.get_project(project_id)
            roster = await self.roster(project_id)
            guard.check(Action.INVITE_MEMBER, roster, inviter_id)

            invitee = await self.directory.get_user_by_email(email)
            if invitee is None:
                raise NotFound("User not found")

            roster = await self._append(
                project_id,
                roster,
                user_id=invitee.id,
                role=role,
                status=MembershipStatus.PENDING,
                invited_by=inviter_id,
            )

        logger.info(
            "Member invited",
            extra={"project_id": str(project_id), "user_id": str(invitee.id), "inviter_id": str(inviter_id)},
        )
        return roster

    async def add_direct(
        self,
        project_id: uuid.UUID,
        inviter_id: uuid.UUID,
        user_id: uuid.UUID,
        role: MemberRole = MemberRole.MEMBER,
    ) -> List[ProjectMember]:
        """Add a user as an accepted member without an invitation step."""
        _reject_owner_role(role)
        async with self.locks.hold(project_id):
            await self.get_project(project_id)
            roster = await self.roster(project_id)
            guard.check(Action.ADD_MEMBER, roster, inviter_id)

            if await self.directory.get_user_by_id(user_id) is None:
                raise NotFound("User not found")

            roster = await self._append(
                project_id,
                roster,
                user_id=user_id,
                role=role,
                status=MembershipStatus.ACCEPTED,
                invited_by=inviter_id,
                joined_at=utcnow(),
            )

        logger.info(
            "Member added",
            extra={"project_id": str(project_id), "user_id": str(user_id), "inviter_id": str(inviter_id)},
        )
        return roster

    async def accept_invite(
        self,
        project_id: uuid.UUID,
        entry_id: uuid.UUID,
        requester_id: uuid.UUID,
    ) -> ProjectMember:
        """pending -> accepted, by the invitee only."""
        async with self.locks.hold(project_id):
            entry = await self._pending_entry_for(project_id, entry_id, requester_id)
            entry.status = MembershipStatus.ACCEPTED
            entry.joined_at = utcnow()
            await self._commit()
        return entry

    async def reject_invite(
        self,
        project_id: uuid.UUID,
        entry_id: uuid.UUID,
        requester_id: uuid.UUID,
    ) -> ProjectMember:
        """pending -> removed, by the invitee only. Returns the deleted entry."""
        async with self.locks.hold(project_id):
            entry = await self._pending_entry_for(project_id, entry_id, requester_id)
            await self.session.delete(entry)
            await self._commit()
        return entry

    async def remove_member(
        self,
        project_id: uuid.UUID,
        requester_id: uuid.UUID,
        entry_id: uuid.UUID,
    ) -> ProjectMember:
        """
        Owner removes a non-owner entry. Returns the deleted entry.

        The removed user is also unassigned from the project's tasks.
        """
        async with self.locks.hold(project_id):
            await self.get_project(project_id)
            roster = await self.roster(project_id)
            guard.check(Action.REMOVE_MEMBER, roster, requester_id)

            entry = _entry_by_id(roster, entry_id)
            if entry is None:
                raise NotFound("Member not found")
            if entry.role == MemberRole.OWNER:
                raise InvariantViolation("Cannot remove project owner")

            await self.session.delete(entry)
            await self.session.execute(
                delete(task_assignees).where(
                    task_assignees.c.user_id == entry.user_id,
                    task_assignees.c.task_id.in_(select(Task.id).where(Task.project_id == project_id)),
                )
            )
            await self._commit()

        logger.info(
            "Member removed",
            extra={"project_id": str(project_id), "user_id": str(entry.user_id), "requester_id": str(requester_id)},
        )
        return entry

    async def change_role(
        self,
        project_id: uuid.UUID,
        requester_id: uuid.UUID,
        entry_id: uuid.UUID,
        role: MemberRole,
    ) -> RoleChange:
        """Owner switches a non-owner entry between member and viewer."""
        _reject_owner_role(role)
        async with self.locks.hold(project_id):
            await self.get_project(project_id)
            roster = await self.roster(project_id)
            guard.check(Action.CHANGE_ROLE, roster, requester_id)

            entry = _entry_by_id(roster, entry_id)
            if entry is None:
                raise NotFound("Member not found")
            if entry.role == MemberRole.OWNER:
                raise InvariantViolation("The owner's role cannot be changed")

            change = RoleChange(entry=entry, previous_role=MemberRole(entry.role))
            if change.previous_role != role:
                entry.role = role
                await self._commit()
        return change

    # Internals

    async def _pending_entry_for(
        self,
        project_id: uuid.UUID,
        entry_id: uuid.UUID,
        requester_id: uuid.UUID,
    ) -> ProjectMember:
        await self.get_project(project_id)
        entry = _entry_by_id(await self.roster(project_id), entry_id)
        if entry is None:
            raise NotFound("Invitation not found")
        guard.check_invitee(entry, requester_id)
        if entry.status != MembershipStatus.PENDING:
            raise Conflict("Invitation has already been accepted")
        return entry

    async def _append(
        self,
        project_id: uuid.UUID,
        roster: List[ProjectMember],
        *,
        user_id: uuid.UUID,
        role: MemberRole,
        status: MembershipStatus,
        invited_by: uuid.UUID,
        joined_at=None,
    ) -> List[ProjectMember]:
        if guard.find_entry(roster, user_id) is not None:
            raise Conflict("User is already a member or has a pending invitation")

        position = await self._next_position(project_id)
        entry = ProjectMember(
            project_id=project_id,
            user_id=user_id,
            role=role,
            status=status,
            invited_by=invited_by,
            joined_at=joined_at,
            position=position,
        )
        self.session.add(entry)
        await self._commit()
        return roster + [entry]

    async def _next_position(self, project_id: uuid.UUID) -> int:
        query = select(func.max(ProjectMember.position)).where(ProjectMember.project_id == project_id)
        result = await self.session.execute(query)
        current = result.scalar()
        return 0 if current is None else current + 1

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError:
            # Another process won the race on (project_id, user_id)
            await self.session.rollback()
            raise Conflict("User is already a member or has a pending invitation")


def _entry_by_id(roster: List[ProjectMember], entry_id: uuid.UUID) -> Optional[ProjectMember]:
    for entry in roster:
        if entry.id == entry_id:
            return entry
    return None


def _reject_owner_role(role: MemberRole) -> None:
    if role == MemberRole.OWNER:
        raise InvariantViolation("A project has exactly one owner, fixed at creation")
