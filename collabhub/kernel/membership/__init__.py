"""
Membership registry - per-project rosters and their lifecycle.
"""

from collabhub.kernel.membership.locks import ProjectLocks
from collabhub.kernel.membership.registry import MembershipRegistry, RoleChange

__all__ = [
    "ProjectLocks",
    "MembershipRegistry",
    "RoleChange",
]
