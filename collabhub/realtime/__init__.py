"""
Realtime infrastructure - project rooms and live-update events.
"""

from collabhub.realtime.bus import EventBus, RoomConnection
from collabhub.realtime.events import (
    CommentAdded,
    ProjectCreated,
    ProjectDeleted,
    ProjectUpdated,
    RealtimeEvent,
    TaskCreated,
    TaskDeleted,
    TaskUpdated,
    encode_event,
)

__all__ = [
    "EventBus",
    "RoomConnection",
    "RealtimeEvent",
    "ProjectCreated",
    "ProjectUpdated",
    "ProjectDeleted",
    "TaskCreated",
    "TaskUpdated",
    "TaskDeleted",
    "CommentAdded",
    "encode_event",
]
