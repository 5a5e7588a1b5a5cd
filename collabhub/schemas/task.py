"""
Task and comment schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from collabhub.kernel.models.task import TaskStatus
from collabhub.schemas.project import UserSummary


class TaskCreate(BaseModel):
    """Task creation request."""

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    due_date: Optional[datetime] = None
    assignees: List[uuid.UUID] = []


class TaskUpdate(BaseModel):
    """
    Task update request. Omitted fields keep their value.

    ``description`` and ``due_date`` may be cleared with null; the other
    fields may only be omitted or replaced. ``assignees`` replaces the whole
    list.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    assignees: Optional[List[uuid.UUID]] = None

    @field_validator("title", "status", "assignees")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class TaskResponse(BaseModel):
    """Task response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    project_id: uuid.UUID
    title: str
    description: Optional[str]
    status: TaskStatus
    due_date: Optional[datetime]
    assignees: List[UserSummary] = []
    created_at: datetime
    updated_at: datetime


class CommentCreate(BaseModel):
    """Comment creation request."""

    content: str = Field(..., min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    """Comment response."""

    id: uuid.UUID
    task_id: uuid.UUID
    author_id: uuid.UUID
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    content: str
    created_at: datetime
