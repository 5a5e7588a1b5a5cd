"""
Realtime endpoint - one websocket per client, joined to any number of
project rooms.

Protocol (JSON text frames):
    client -> {"action": "join" | "leave", "project_id": "<uuid>"}
    server -> {"type": "ack", "action": ..., "project_id": ...}
              {"type": "error", "detail": ...}
              {"type": "<EventType>", "project_id": ..., "payload": {...}}

Replies travel through the connection's outbound queue, so they stay ordered
with the room events around them.
"""

import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ValidationError

from collabhub.config import get_settings
from collabhub.api.deps import SessionFactory, authenticate_token
from collabhub.kernel.errors import CollaborationError
from collabhub.kernel.membership import MembershipRegistry
from collabhub.kernel.permissions import guard
from collabhub.kernel.permissions.guard import Action
from collabhub.logging_config import bind_connection, get_logger
from collabhub.realtime.bus import EventBus, RoomConnection

logger = get_logger(__name__)

router = APIRouter()


class RoomCommand(BaseModel):
    action: Literal["join", "leave"]
    project_id: uuid.UUID


def _error(detail: str) -> dict:
    return {"type": "error", "detail": detail}


async def _may_join(factory, project_id: uuid.UUID, user_id: uuid.UUID) -> Optional[str]:
    """Return a denial reason, or None when the user may watch the project."""
    async with factory() as session:
        registry = MembershipRegistry(session)
        try:
            await registry.get_project(project_id)
            guard.check(Action.READ_PROJECT, await registry.roster(project_id), user_id)
        except CollaborationError as exc:
            return exc.detail
    return None


@router.websocket("/ws")
async def realtime(
    websocket: WebSocket,
    factory: SessionFactory,
    token: Optional[str] = Query(None),
):
    async with factory() as session:
        user = await authenticate_token(token, session)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    bus: EventBus = websocket.app.state.event_bus
    connection = RoomConnection(
        websocket.send_json,
        user_id=user.id,
        max_queue=get_settings().realtime_queue_size,
    )
    with bind_connection(connection.id):
        connection.start()
        logger.info("Realtime connection opened", extra={"user_id": str(user.id)})
        try:
            while True:
                raw = await websocket.receive_json()
                try:
                    command = RoomCommand.model_validate(raw)
                except ValidationError:
                    connection.deliver(_error("Invalid command"))
                    continue

                if command.action == "join":
                    denial = await _may_join(factory, command.project_id, user.id)
                    if denial is not None:
                        connection.deliver(_error(denial))
                        continue
                    bus.join(connection, command.project_id)
                else:
                    bus.leave(connection, command.project_id)

                connection.deliver({
                    "type": "ack",
                    "action": command.action,
                    "project_id": str(command.project_id),
                })
        except WebSocketDisconnect:
            pass
        except ValueError:
            # receive_json on a non-JSON frame
            await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA)
        finally:
            bus.disconnect(connection)
            await connection.close()
            logger.info("Realtime connection closed", extra={"user_id": str(user.id)})
