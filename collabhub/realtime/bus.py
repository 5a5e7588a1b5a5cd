"""
Realtime event bus - room-based publish/subscribe.

Rooms are keyed by project id. ``publish`` hands the encoded event to every
connection joined to the room at that instant and returns immediately; each
connection drains its own FIFO queue from a background task, so one slow or
broken socket never delays the publisher or other subscribers.

Delivery is at-most-once and best-effort: there is no backlog for
connections that join later, a full queue drops the message, and send
errors are logged and dropped.
"""

import asyncio
import uuid
from contextlib import suppress
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Set

from collabhub.logging_config import get_logger
from collabhub.realtime.events import RealtimeEvent, encode_event

logger = get_logger(__name__)

Sender = Callable[[Dict[str, Any]], Awaitable[None]]


class RoomConnection:
    """
    One subscriber: an outbound queue plus the task that drains it.

    Messages are sent in the order they were delivered to the connection.
    """

    def __init__(
        self,
        send: Sender,
        *,
        user_id: Optional[uuid.UUID] = None,
        max_queue: int = 100,
    ):
        self.id = uuid.uuid4().hex
        self.user_id = user_id
        self.rooms: Set[uuid.UUID] = set()
        self._send = send
        self._queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=max_queue)
        self._pump: Optional[asyncio.Task] = None

    def start(self) -> None:
        """Start draining the queue. Needs a running event loop."""
        if self._pump is None:
            self._pump = asyncio.create_task(self._drain(), name=f"room-connection-{self.id}")

    def deliver(self, message: Dict[str, Any]) -> bool:
        """Enqueue without waiting. Returns False when the message was dropped."""
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                "Realtime queue full, dropping message",
                extra={"connection_id": self.id, "message_type": message.get("type")},
            )
            return False
        return True

    async def flush(self) -> None:
        """Wait until everything delivered so far has been sent (or dropped)."""
        await self._queue.join()

    async def close(self) -> None:
        if self._pump is not None:
            self._pump.cancel()
            with suppress(asyncio.CancelledError):
                await self._pump
            self._pump = None

    async def _drain(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self._send(message)
            except Exception:
                logger.warning(
                    "Realtime send failed",
                    exc_info=True,
                    extra={"connection_id": self.id, "message_type": message.get("type")},
                )
            finally:
                self._queue.task_done()

    def __repr__(self) -> str:
        return f"<RoomConnection {self.id} rooms={len(self.rooms)}>"


class EventBus:
    """
    Process-owned registry of rooms.

    Construct once at startup and pass it to whoever publishes or manages
    subscriptions.
    """

    def __init__(self) -> None:
        self._rooms: Dict[uuid.UUID, Set[RoomConnection]] = {}

    def join(self, connection: RoomConnection, project_id: uuid.UUID) -> bool:
        """Subscribe to a room. Returns False if already joined."""
        room = self._rooms.setdefault(project_id, set())
        if connection in room:
            return False
        room.add(connection)
        connection.rooms.add(project_id)
        logger.debug("Joined room", extra={"connection_id": connection.id, "project_id": str(project_id)})
        return True

    def leave(self, connection: RoomConnection, project_id: uuid.UUID) -> bool:
        """Unsubscribe from a room. Returns False if not joined."""
        room = self._rooms.get(project_id)
        if room is None or connection not in room:
            return False
        room.discard(connection)
        connection.rooms.discard(project_id)
        if not room:
            del self._rooms[project_id]
        logger.debug("Left room", extra={"connection_id": connection.id, "project_id": str(project_id)})
        return True

    def disconnect(self, connection: RoomConnection) -> None:
        """Leave every room the connection is in."""
        for project_id in list(connection.rooms):
            self.leave(connection, project_id)

    def evict(self, project_id: uuid.UUID, user_id: uuid.UUID) -> int:
        """Drop all of a user's connections from a room; returns how many were removed."""
        evicted = [c for c in self.subscribers(project_id) if c.user_id == user_id]
        for connection in evicted:
            self.leave(connection, project_id)
        return len(evicted)

    def subscribers(self, project_id: uuid.UUID) -> FrozenSet[RoomConnection]:
        return frozenset(self._rooms.get(project_id, ()))

    def publish(self, project_id: uuid.UUID, event: RealtimeEvent) -> int:
        """
        Deliver to the room's current subscribers without blocking.

        Returns:
            Number of connections the message was queued for
        """
        message = encode_event(project_id, event)
        reached = 0
        for connection in self.subscribers(project_id):
            if connection.deliver(message):
                reached += 1
        logger.debug(
            "Published realtime event",
            extra={"project_id": str(project_id), "event_type": event.type, "reached": reached},
        )
        return reached

    @property
    def connection_count(self) -> int:
        return len({c for room in self._rooms.values() for c in room})
