"""Unit tests for the membership registry."""

import asyncio
import uuid

import pytest
import pytest_asyncio

from collabhub.kernel.errors import Conflict, Forbidden, InvariantViolation, NotFound
from collabhub.kernel.membership import MembershipRegistry
from collabhub.kernel.models.base import utcnow
from collabhub.kernel.models.project import MemberRole, MembershipStatus


def _owners(roster):
    return [e for e in roster if e.role == MemberRole.OWNER]


@pytest_asyncio.fixture
async def project(registry, owner):
    return await registry.create_project(owner.id, "Launch", "Ship it")


class TestCreateProject:
    """Tests for create_project."""

    @pytest.mark.asyncio
    async def test_roster_starts_with_accepted_owner(self, registry, owner, project):
        roster = await registry.roster(project.id)

        assert len(roster) == 1
        assert roster[0].user_id == owner.id
        assert roster[0].role == MemberRole.OWNER
        assert roster[0].status == MembershipStatus.ACCEPTED
        assert roster[0].joined_at is not None
        assert project.owner_id == owner.id

    @pytest.mark.asyncio
    async def test_deleted_project_is_not_found(self, registry, db_session, project):
        project.deleted_at = utcnow()
        await db_session.commit()

        with pytest.raises(NotFound):
            await registry.get_project(project.id)


class TestInvite:
    """Tests for invite."""

    @pytest.mark.asyncio
    async def test_invite_appends_pending_entry(self, registry, owner, alice, project):
        roster = await registry.invite(project.id, owner.id, "alice@example.com")

        assert [e.user_id for e in roster] == [owner.id, alice.id]
        invitation = roster[-1]
        assert invitation.status == MembershipStatus.PENDING
        assert invitation.role == MemberRole.MEMBER
        assert invitation.invited_by == owner.id
        assert invitation.joined_at is None

    @pytest.mark.asyncio
    async def test_email_lookup_ignores_case(self, registry, owner, alice, project):
        roster = await registry.invite(project.id, owner.id, "  ALICE@Example.com ")
        assert roster[-1].user_id == alice.id

    @pytest.mark.asyncio
    async def test_unknown_email(self, registry, owner, project):
        with pytest.raises(NotFound) as exc_info:
            await registry.invite(project.id, owner.id, "nobody@example.com")
        assert exc_info.value.detail == "User not found"
        assert len(await registry.roster(project.id)) == 1

    @pytest.mark.asyncio
    async def test_duplicate_invite_conflicts(self, registry, owner, alice, project):
        await registry.invite(project.id, owner.id, alice.email)

        with pytest.raises(Conflict):
            await registry.invite(project.id, owner.id, alice.email)
        assert len(await registry.roster(project.id)) == 2

    @pytest.mark.asyncio
    async def test_inviting_the_owner_conflicts(self, registry, owner, project):
        with pytest.raises(Conflict):
            await registry.invite(project.id, owner.id, owner.email)
        assert len(_owners(await registry.roster(project.id))) == 1

    @pytest.mark.asyncio
    async def test_owner_role_cannot_be_granted(self, registry, owner, alice, project):
        with pytest.raises(InvariantViolation):
            await registry.invite(project.id, owner.id, alice.email, MemberRole.OWNER)

    @pytest.mark.asyncio
    async def test_accepted_member_may_invite(self, registry, owner, alice, bob, project):
        await registry.add_direct(project.id, owner.id, alice.id)

        roster = await registry.invite(project.id, alice.id, bob.email)
        assert roster[-1].invited_by == alice.id

    @pytest.mark.asyncio
    async def test_pending_invitee_may_not_invite(self, registry, owner, alice, bob, project):
        await registry.invite(project.id, owner.id, alice.email)

        with pytest.raises(Forbidden):
            await registry.invite(project.id, alice.id, bob.email)

    @pytest.mark.asyncio
    async def test_missing_project(self, registry, owner, alice, project):
        with pytest.raises(NotFound) as exc_info:
            await registry.invite(uuid.uuid4(), owner.id, alice.email)
        assert exc_info.value.detail == "Project not found"


class TestAnswerInvitation:
    """Tests for accept_invite / reject_invite."""

    @pytest.mark.asyncio
    async def test_accept(self, registry, owner, alice, project):
        roster = await registry.invite(project.id, owner.id, alice.email)

        entry = await registry.accept_invite(project.id, roster[-1].id, alice.id)

        assert entry.status == MembershipStatus.ACCEPTED
        assert entry.joined_at is not None
        assert [e.user_id for e in await registry.roster(project.id)] == [owner.id, alice.id]

    @pytest.mark.asyncio
    async def test_only_invitee_may_accept(self, registry, owner, alice, project):
        roster = await registry.invite(project.id, owner.id, alice.email)

        with pytest.raises(Forbidden):
            await registry.accept_invite(project.id, roster[-1].id, owner.id)

    @pytest.mark.asyncio
    async def test_accept_twice_conflicts(self, registry, owner, alice, project):
        roster = await registry.invite(project.id, owner.id, alice.email)
        await registry.accept_invite(project.id, roster[-1].id, alice.id)

        with pytest.raises(Conflict):
            await registry.accept_invite(project.id, roster[-1].id, alice.id)

    @pytest.mark.asyncio
    async def test_unknown_invitation(self, registry, owner, alice, project):
        with pytest.raises(NotFound) as exc_info:
            await registry.accept_invite(project.id, uuid.uuid4(), alice.id)
        assert exc_info.value.detail == "Invitation not found"

    @pytest.mark.asyncio
    async def test_reject_removes_entry(self, registry, owner, alice, project):
        roster = await registry.invite(project.id, owner.id, alice.email)

        entry = await registry.reject_invite(project.id, roster[-1].id, alice.id)

        assert entry.user_id == alice.id
        assert [e.user_id for e in await registry.roster(project.id)] == [owner.id]

    @pytest.mark.asyncio
    async def test_rejected_user_can_be_invited_again(self, registry, owner, alice, project):
        roster = await registry.invite(project.id, owner.id, alice.email)
        await registry.reject_invite(project.id, roster[-1].id, alice.id)

        roster = await registry.invite(project.id, owner.id, alice.email)
        assert roster[-1].status == MembershipStatus.PENDING


class TestAddDirect:
    """Tests for add_direct."""

    @pytest.mark.asyncio
    async def test_added_member_is_accepted(self, registry, owner, alice, project):
        roster = await registry.add_direct(project.id, owner.id, alice.id, MemberRole.VIEWER)

        entry = roster[-1]
        assert entry.status == MembershipStatus.ACCEPTED
        assert entry.role == MemberRole.VIEWER
        assert entry.joined_at is not None

    @pytest.mark.asyncio
    async def test_members_may_not_add_directly(self, registry, owner, alice, bob, project):
        await registry.add_direct(project.id, owner.id, alice.id)

        with pytest.raises(Forbidden):
            await registry.add_direct(project.id, alice.id, bob.id)

    @pytest.mark.asyncio
    async def test_positions_are_append_order(self, registry, owner, alice, bob, carol, project):
        await registry.add_direct(project.id, owner.id, alice.id)
        await registry.invite(project.id, owner.id, bob.email)
        await registry.add_direct(project.id, owner.id, carol.id)

        roster = await registry.roster(project.id)
        assert [e.user_id for e in roster] == [owner.id, alice.id, bob.id, carol.id]
        assert [e.position for e in roster] == [0, 1, 2, 3]


class TestRemoveMember:
    """Tests for remove_member."""

    @pytest.mark.asyncio
    async def test_owner_removes_member(self, registry, owner, alice, bob, project):
        await registry.add_direct(project.id, owner.id, alice.id)
        roster = await registry.add_direct(project.id, owner.id, bob.id)

        removed = await registry.remove_member(project.id, owner.id, roster[1].id)

        assert removed.user_id == alice.id
        assert [e.user_id for e in await registry.roster(project.id)] == [owner.id, bob.id]

    @pytest.mark.asyncio
    async def test_owner_withdraws_invitation(self, registry, owner, alice, project):
        roster = await registry.invite(project.id, owner.id, alice.email)

        await registry.remove_member(project.id, owner.id, roster[-1].id)
        assert len(await registry.roster(project.id)) == 1

    @pytest.mark.asyncio
    async def test_owner_entry_cannot_be_removed(self, registry, owner, project):
        roster = await registry.roster(project.id)

        with pytest.raises(InvariantViolation) as exc_info:
            await registry.remove_member(project.id, owner.id, roster[0].id)
        assert exc_info.value.detail == "Cannot remove project owner"
        assert len(_owners(await registry.roster(project.id))) == 1

    @pytest.mark.asyncio
    async def test_member_may_not_remove(self, registry, owner, alice, bob, project):
        await registry.add_direct(project.id, owner.id, alice.id)
        roster = await registry.add_direct(project.id, owner.id, bob.id)

        with pytest.raises(Forbidden):
            await registry.remove_member(project.id, alice.id, roster[-1].id)
        assert len(await registry.roster(project.id)) == 3

    @pytest.mark.asyncio
    async def test_unknown_entry(self, registry, owner, project):
        with pytest.raises(NotFound):
            await registry.remove_member(project.id, owner.id, uuid.uuid4())


class TestChangeRole:
    """Tests for change_role."""

    @pytest.mark.asyncio
    async def test_member_to_viewer(self, registry, owner, alice, project):
        roster = await registry.add_direct(project.id, owner.id, alice.id)

        change = await registry.change_role(project.id, owner.id, roster[-1].id, MemberRole.VIEWER)

        assert change.changed
        assert change.previous_role == MemberRole.MEMBER
        assert (await registry.roster(project.id))[-1].role == MemberRole.VIEWER

    @pytest.mark.asyncio
    async def test_same_role_is_not_a_change(self, registry, owner, alice, project):
        roster = await registry.add_direct(project.id, owner.id, alice.id)

        change = await registry.change_role(project.id, owner.id, roster[-1].id, MemberRole.MEMBER)
        assert not change.changed

    @pytest.mark.asyncio
    async def test_owner_role_is_fixed(self, registry, owner, alice, project):
        roster = await registry.add_direct(project.id, owner.id, alice.id)

        with pytest.raises(InvariantViolation):
            await registry.change_role(project.id, owner.id, roster[0].id, MemberRole.VIEWER)
        with pytest.raises(InvariantViolation):
            await registry.change_role(project.id, owner.id, roster[-1].id, MemberRole.OWNER)

    @pytest.mark.asyncio
    async def test_member_may_not_change_roles(self, registry, owner, alice, bob, project):
        await registry.add_direct(project.id, owner.id, alice.id)
        roster = await registry.add_direct(project.id, owner.id, bob.id)

        with pytest.raises(Forbidden):
            await registry.change_role(project.id, alice.id, roster[-1].id, MemberRole.VIEWER)


class TestQueries:
    """Tests for projects_for / pending_invitations."""

    @pytest.mark.asyncio
    async def test_projects_for_includes_pending(self, registry, owner, alice, project):
        other = await registry.create_project(owner.id, "Other")
        await registry.invite(other.id, owner.id, alice.email)
        await registry.add_direct(project.id, owner.id, alice.id)

        listed = {p.id: entry.status for p, entry in await registry.projects_for(alice.id)}
        assert listed == {
            project.id: MembershipStatus.ACCEPTED,
            other.id: MembershipStatus.PENDING,
        }

    @pytest.mark.asyncio
    async def test_pending_invitations(self, registry, owner, alice, project):
        await registry.invite(project.id, owner.id, alice.email)

        invitations = await registry.pending_invitations(alice.id)
        assert [(p.id, entry.user_id) for entry, p in invitations] == [(project.id, alice.id)]
        assert await registry.pending_invitations(owner.id) == []


class TestSerialization:
    """Concurrent writers on one project see each other's commits."""

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_invites(self, session_factory, locks, owner, alice, project):
        async def invite():
            async with session_factory() as session:
                return await MembershipRegistry(session, locks).invite(project.id, owner.id, alice.email)

        results = await asyncio.gather(invite(), invite(), return_exceptions=True)

        assert sum(isinstance(r, list) for r in results) == 1
        assert sum(isinstance(r, Conflict) for r in results) == 1
        async with session_factory() as session:
            roster = await MembershipRegistry(session).roster(project.id)
        assert [e.user_id for e in roster] == [owner.id, alice.id]
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_concurrent_adds_get_distinct_positions(
        self, session_factory, locks, owner, alice, bob, carol, project
    ):
        async def add(user):
            async with session_factory() as session:
                await MembershipRegistry(session, locks).add_direct(project.id, owner.id, user.id)

        await asyncio.gather(add(alice), add(bob), add(carol))

        async with session_factory() as session:
            roster = await MembershipRegistry(session).roster(project.id)
        assert [e.position for e in roster] == [0, 1, 2, 3]
        assert {e.user_id for e in roster} == {owner.id, alice.id, bob.id, carol.id}
        assert len(_owners(roster)) == 1
