"""Unit tests for the capability guard."""

import uuid

import pytest

from collabhub.kernel.errors import Conflict, Forbidden
from collabhub.kernel.models.project import MemberRole, MembershipStatus, ProjectMember
from collabhub.kernel.permissions.guard import (
    POLICY,
    Action,
    Capability,
    can,
    check,
    check_assignees,
    check_invitee,
    find_entry,
    is_member,
    is_owner,
)

OWNER_ID = uuid.uuid4()
MEMBER_ID = uuid.uuid4()
VIEWER_ID = uuid.uuid4()
INVITEE_ID = uuid.uuid4()
STRANGER_ID = uuid.uuid4()


def _entry(user_id, role, status=MembershipStatus.ACCEPTED, position=0) -> ProjectMember:
    return ProjectMember(
        id=uuid.uuid4(),
        project_id=uuid.uuid4(),
        user_id=user_id,
        role=role,
        status=status,
        invited_by=OWNER_ID,
        position=position,
    )


@pytest.fixture
def roster():
    return [
        _entry(OWNER_ID, MemberRole.OWNER),
        _entry(MEMBER_ID, MemberRole.MEMBER, position=1),
        _entry(VIEWER_ID, MemberRole.VIEWER, position=2),
        _entry(INVITEE_ID, MemberRole.MEMBER, MembershipStatus.PENDING, position=3),
    ]


OWNER_ACTIONS = [a for a, c in POLICY.items() if c == Capability.OWNER]
MEMBER_ACTIONS = [a for a, c in POLICY.items() if c == Capability.MEMBER]


class TestPolicy:
    """The policy table itself."""

    def test_every_action_has_a_rule(self):
        assert set(POLICY) == set(Action)

    def test_owner_only_actions(self):
        assert set(OWNER_ACTIONS) == {
            Action.UPDATE_PROJECT,
            Action.DELETE_PROJECT,
            Action.REMOVE_MEMBER,
            Action.CHANGE_ROLE,
            Action.ADD_MEMBER,
        }


class TestMembership:
    """Tests for is_member / is_owner."""

    def test_accepted_entries_are_members(self, roster):
        assert is_member(roster, OWNER_ID)
        assert is_member(roster, MEMBER_ID)
        assert is_member(roster, VIEWER_ID)

    def test_pending_invitee_is_not_a_member(self, roster):
        assert find_entry(roster, INVITEE_ID) is not None
        assert not is_member(roster, INVITEE_ID)

    def test_stranger_is_not_a_member(self, roster):
        assert find_entry(roster, STRANGER_ID) is None
        assert not is_member(roster, STRANGER_ID)

    def test_only_the_owner_is_owner(self, roster):
        assert is_owner(roster, OWNER_ID)
        assert not is_owner(roster, MEMBER_ID)
        assert not is_owner(roster, STRANGER_ID)

    def test_empty_roster(self):
        assert not is_member([], OWNER_ID)
        assert not is_owner([], OWNER_ID)


class TestCan:
    """Tests for can / check."""

    @pytest.mark.parametrize("action", list(Action))
    def test_owner_can_do_everything(self, roster, action):
        assert can(action, roster, OWNER_ID)

    @pytest.mark.parametrize("action", MEMBER_ACTIONS)
    def test_members_and_viewers_get_member_actions(self, roster, action):
        assert can(action, roster, MEMBER_ID)
        assert can(action, roster, VIEWER_ID)

    @pytest.mark.parametrize("action", OWNER_ACTIONS)
    def test_members_cannot_do_owner_actions(self, roster, action):
        assert not can(action, roster, MEMBER_ID)

    @pytest.mark.parametrize("action", list(Action))
    def test_pending_invitee_and_stranger_can_do_nothing(self, roster, action):
        assert not can(action, roster, INVITEE_ID)
        assert not can(action, roster, STRANGER_ID)

    def test_check_passes_silently(self, roster):
        check(Action.CREATE_TASK, roster, MEMBER_ID)

    def test_check_denies_non_member(self, roster):
        with pytest.raises(Forbidden) as exc_info:
            check(Action.READ_PROJECT, roster, STRANGER_ID)
        assert exc_info.value.detail == "Access denied"
        assert exc_info.value.status_code == 403

    def test_check_denies_member_on_owner_action(self, roster):
        with pytest.raises(Forbidden) as exc_info:
            check(Action.REMOVE_MEMBER, roster, MEMBER_ID)
        assert exc_info.value.detail == "Only the project owner can do this"


class TestCheckInvitee:
    """Only the invited user may answer an invitation."""

    def test_invitee_passes(self, roster):
        check_invitee(roster[3], INVITEE_ID)

    def test_anyone_else_is_denied(self, roster):
        with pytest.raises(Forbidden):
            check_invitee(roster[3], OWNER_ID)


class TestCheckAssignees:
    """Tasks are assigned to accepted members only."""

    def test_accepted_entries_pass(self, roster):
        check_assignees(roster, [OWNER_ID, MEMBER_ID, VIEWER_ID])

    def test_no_assignees(self, roster):
        check_assignees(roster, [])

    @pytest.mark.parametrize("user_id", [INVITEE_ID, STRANGER_ID])
    def test_pending_and_outsiders_conflict(self, roster, user_id):
        with pytest.raises(Conflict) as exc_info:
            check_assignees(roster, [MEMBER_ID, user_id])
        assert exc_info.value.status_code == 409
