"""
Activity ledger - what happened in each project, newest first.
"""

from collabhub.kernel.activity.ledger import ActivityLedger, ResolvedActivity

__all__ = [
    "ActivityLedger",
    "ResolvedActivity",
]
