"""
Notifications - fan-out on tracked mutations and the per-user inbox.
"""

from collabhub.kernel.notifications.fanout import FanoutEngine, FanoutResult, MessageBuilder
from collabhub.kernel.notifications.inbox import NotificationInbox

__all__ = [
    "FanoutEngine",
    "FanoutResult",
    "MessageBuilder",
    "NotificationInbox",
]
