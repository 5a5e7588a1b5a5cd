"""
Realtime event variants.

The set is closed: every event pushed to a room is one of the models below,
tagged by its ``type`` field. Create/update events carry the entity's public
representation; delete events carry the ids the client needs to drop it.
"""

import uuid
from typing import Annotated, Any, Dict, Literal, Union

from pydantic import BaseModel, Field

from collabhub.schemas.project import ProjectResponse
from collabhub.schemas.task import CommentResponse, TaskResponse


class ProjectCreated(BaseModel):
    type: Literal["ProjectCreated"] = "ProjectCreated"
    project: ProjectResponse


class ProjectUpdated(BaseModel):
    type: Literal["ProjectUpdated"] = "ProjectUpdated"
    project: ProjectResponse


class ProjectDeleted(BaseModel):
    type: Literal["ProjectDeleted"] = "ProjectDeleted"
    project_id: uuid.UUID


class TaskCreated(BaseModel):
    type: Literal["TaskCreated"] = "TaskCreated"
    task: TaskResponse


class TaskUpdated(BaseModel):
    type: Literal["TaskUpdated"] = "TaskUpdated"
    task: TaskResponse


class TaskDeleted(BaseModel):
    type: Literal["TaskDeleted"] = "TaskDeleted"
    task_id: uuid.UUID
    project_id: uuid.UUID


class CommentAdded(BaseModel):
    type: Literal["CommentAdded"] = "CommentAdded"
    comment: CommentResponse


RealtimeEvent = Annotated[
    Union[
        ProjectCreated,
        ProjectUpdated,
        ProjectDeleted,
        TaskCreated,
        TaskUpdated,
        TaskDeleted,
        CommentAdded,
    ],
    Field(discriminator="type"),
]


class RoomMessage(BaseModel):
    """Wire envelope pushed to subscribers."""

    type: str
    project_id: uuid.UUID
    payload: Dict[str, Any]


def encode_event(project_id: uuid.UUID, event: RealtimeEvent) -> Dict[str, Any]:
    """JSON-ready envelope for one event."""
    return RoomMessage(
        type=event.type,
        project_id=project_id,
        payload=event.model_dump(mode="json", exclude={"type"}),
    ).model_dump(mode="json")
