"""
Capability guard - project-level authorization decisions.

Every function here is a pure predicate over a roster snapshot; callers load
the roster and decide what to do with the answer. ``check`` raises
``Forbidden`` so a failed check aborts the action before anything is written.
"""

import uuid
from enum import Enum
from typing import Dict, Iterable, Optional, Sequence

from collabhub.kernel.errors import Conflict, Forbidden
from collabhub.kernel.models.project import MemberRole, MembershipStatus, ProjectMember


class Capability(str, Enum):
    """What a user must be on the roster to perform an action."""
    MEMBER = "member"
    OWNER = "owner"


class Action(str, Enum):
    """Guarded actions on a project."""
    READ_PROJECT = "read_project"
    READ_TASKS = "read_tasks"
    READ_COMMENTS = "read_comments"
    READ_ROSTER = "read_roster"
    READ_ACTIVITY = "read_activity"
    UPDATE_PROJECT = "update_project"
    DELETE_PROJECT = "delete_project"
    REMOVE_MEMBER = "remove_member"
    CHANGE_ROLE = "change_role"
    ADD_MEMBER = "add_member"
    INVITE_MEMBER = "invite_member"
    CREATE_TASK = "create_task"
    UPDATE_TASK = "update_task"
    DELETE_TASK = "delete_task"
    ADD_COMMENT = "add_comment"


POLICY: Dict[Action, Capability] = {
    Action.READ_PROJECT: Capability.MEMBER,
    Action.READ_TASKS: Capability.MEMBER,
    Action.READ_COMMENTS: Capability.MEMBER,
    Action.READ_ROSTER: Capability.MEMBER,
    Action.READ_ACTIVITY: Capability.MEMBER,
    Action.UPDATE_PROJECT: Capability.OWNER,
    Action.DELETE_PROJECT: Capability.OWNER,
    Action.REMOVE_MEMBER: Capability.OWNER,
    Action.CHANGE_ROLE: Capability.OWNER,
    # Direct add skips the invitee's consent, so it is owner-only
    Action.ADD_MEMBER: Capability.OWNER,
    Action.INVITE_MEMBER: Capability.MEMBER,
    Action.CREATE_TASK: Capability.MEMBER,
    Action.UPDATE_TASK: Capability.MEMBER,
    Action.DELETE_TASK: Capability.MEMBER,
    Action.ADD_COMMENT: Capability.MEMBER,
}

_DENIAL_MESSAGES = {
    Capability.MEMBER: "Access denied",
    Capability.OWNER: "Only the project owner can do this",
}


def find_entry(roster: Iterable[ProjectMember], user_id: uuid.UUID) -> Optional[ProjectMember]:
    """Return the user's roster entry, if any."""
    for entry in roster:
        if entry.user_id == user_id:
            return entry
    return None


def is_member(roster: Sequence[ProjectMember], user_id: uuid.UUID) -> bool:
    """True if the user holds an accepted entry. Pending invitees are not members."""
    entry = find_entry(roster, user_id)
    return entry is not None and entry.status == MembershipStatus.ACCEPTED


def is_owner(roster: Sequence[ProjectMember], user_id: uuid.UUID) -> bool:
    entry = find_entry(roster, user_id)
    return entry is not None and entry.role == MemberRole.OWNER


def can(action: Action, roster: Sequence[ProjectMember], user_id: uuid.UUID) -> bool:
    """Evaluate the policy table for one action."""
    required = POLICY[action]
    if required == Capability.OWNER:
        return is_owner(roster, user_id)
    return is_member(roster, user_id)


def check(action: Action, roster: Sequence[ProjectMember], user_id: uuid.UUID) -> None:
    """Raise ``Forbidden`` unless the user may perform the action."""
    if not can(action, roster, user_id):
        raise Forbidden(_DENIAL_MESSAGES[POLICY[action]])


def check_invitee(entry: ProjectMember, requester_id: uuid.UUID) -> None:
    """Only the invited user may answer an invitation."""
    if entry.user_id != requester_id:
        raise Forbidden("Only the invited user can answer this invitation")


def check_assignees(roster: Sequence[ProjectMember], user_ids: Iterable[uuid.UUID]) -> None:
    """Tasks can only be assigned to accepted members of their project."""
    if any(not is_member(roster, user_id) for user_id in user_ids):
        raise Conflict("Assignees must be accepted members of the project")
