"""
Capability guard - roster-based access control.
"""

from collabhub.kernel.permissions.guard import (
    Action,
    Capability,
    POLICY,
    can,
    check,
    check_assignees,
    check_invitee,
    find_entry,
    is_member,
    is_owner,
)

__all__ = [
    "Action",
    "Capability",
    "POLICY",
    "can",
    "check",
    "check_assignees",
    "check_invitee",
    "find_entry",
    "is_member",
    "is_owner",
]
