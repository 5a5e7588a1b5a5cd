"""
Collaboration Kernel

The project collaboration core:
- Membership Registry (per-project rosters, serialized writers)
- Capability Guard (roster-based authorization decisions)
- Activity Ledger (append-only project history)
- Notification Fan-out (one inbox entry per affected member)
- Post-commit hook tying ledger, fan-out and realtime publish together

Invariants:
- Every roster has exactly one Owner entry, always accepted
- No roster holds two entries for the same user
- Guard/registry failures leave no trace; post-commit failures never fail the action
"""

from collabhub.kernel.errors import (
    CollaborationError,
    Conflict,
    Forbidden,
    InvariantViolation,
    NotFound,
)
from collabhub.kernel.membership import MembershipRegistry, ProjectLocks
from collabhub.kernel.activity import ActivityLedger
from collabhub.kernel.notifications import FanoutEngine, NotificationInbox
from collabhub.kernel.post_commit import CommittedAction, PostCommitHook, PostCommitReport

__all__ = [
    # Errors
    "CollaborationError",
    "Conflict",
    "Forbidden",
    "InvariantViolation",
    "NotFound",
    # Roster
    "MembershipRegistry",
    "ProjectLocks",
    # Ledger
    "ActivityLedger",
    # Notifications
    "FanoutEngine",
    "NotificationInbox",
    # Side effects
    "CommittedAction",
    "PostCommitHook",
    "PostCommitReport",
]
