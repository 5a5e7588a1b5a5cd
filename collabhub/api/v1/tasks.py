"""
Task endpoints. Every member of a project may read and change its tasks.
"""

import uuid
from typing import Annotated, Iterable, List, Sequence

from fastapi import APIRouter, Depends, status
from sqlalchemy import select

from collabhub.api.deps import AfterCommit, CurrentUser, DbSession, ProjectAccess
from collabhub.kernel.errors import NotFound
from collabhub.kernel.models.activity import ActivityAction, EntityType
from collabhub.kernel.models.notification import NotificationType
from collabhub.kernel.models.project import ProjectMember
from collabhub.kernel.models.task import Task
from collabhub.kernel.models.user import User
from collabhub.kernel.permissions import guard
from collabhub.kernel.permissions.guard import Action
from collabhub.kernel.post_commit import CommittedAction
from collabhub.realtime.events import TaskCreated, TaskDeleted, TaskUpdated
from collabhub.schemas.common import SuccessResponse
from collabhub.schemas.task import TaskCreate, TaskResponse, TaskUpdate

router = APIRouter()

TaskReader = Annotated[List[ProjectMember], Depends(ProjectAccess(Action.READ_TASKS))]
TaskCreator = Annotated[List[ProjectMember], Depends(ProjectAccess(Action.CREATE_TASK))]
TaskEditor = Annotated[List[ProjectMember], Depends(ProjectAccess(Action.UPDATE_TASK))]
TaskRemover = Annotated[List[ProjectMember], Depends(ProjectAccess(Action.DELETE_TASK))]


async def _get_task(db, project_id: uuid.UUID, task_id: uuid.UUID) -> Task:
    query = select(Task).where(Task.id == task_id, Task.project_id == project_id)
    result = await db.execute(query)
    task = result.scalar_one_or_none()
    if task is None:
        raise NotFound("Task not found")
    return task


async def _assignees(db, roster: Sequence[ProjectMember], user_ids: Iterable[uuid.UUID]) -> List[User]:
    """Resolve assignee ids; every one must be an accepted member."""
    user_ids = list(dict.fromkeys(user_ids))
    guard.check_assignees(roster, user_ids)
    if not user_ids:
        return []
    result = await db.execute(select(User).where(User.id.in_(user_ids)).order_by(User.name))
    return list(result.scalars().all())


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    project_id: uuid.UUID,
    data: TaskCreate,
    roster: TaskCreator,
    user: CurrentUser,
    db: DbSession,
    hook: AfterCommit,
):
    """Create a task in the project."""
    task = Task(
        project_id=project_id,
        title=data.title,
        description=data.description,
        status=data.status,
        due_date=data.due_date,
        assignees=await _assignees(db, roster, data.assignees),
    )
    db.add(task)
    await db.commit()

    response = TaskResponse.model_validate(task)
    await hook.run(CommittedAction(
        project_id=project_id,
        actor_id=user.id,
        action=ActivityAction.TASK_CREATED,
        details=task.title,
        entity_type=EntityType.TASK,
        entity_id=task.id,
        notification_type=NotificationType.TASK,
        message=f"Task created: {task.title}",
        event=TaskCreated(task=response),
    ))
    return response


@router.get("", response_model=List[TaskResponse])
async def list_tasks(
    project_id: uuid.UUID,
    roster: TaskReader,
    db: DbSession,
):
    """Tasks of the project, oldest first."""
    query = (
        select(Task)
        .where(Task.project_id == project_id)
        .order_by(Task.created_at, Task.id)
    )
    result = await db.execute(query)
    return [TaskResponse.model_validate(task) for task in result.scalars().all()]


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    roster: TaskReader,
    db: DbSession,
):
    return TaskResponse.model_validate(await _get_task(db, project_id, task_id))


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    data: TaskUpdate,
    roster: TaskEditor,
    user: CurrentUser,
    db: DbSession,
    hook: AfterCommit,
):
    """
    Update a task.

    A change that only moves the task to another column is recorded as a
    status update; anything else as a task update. A request that changes
    nothing is not recorded.
    """
    task = await _get_task(db, project_id, task_id)

    update_data = data.model_dump(exclude_unset=True)
    changed = set()
    if "assignees" in update_data:
        assignees = await _assignees(db, roster, update_data.pop("assignees"))
        if {u.id for u in assignees} != {u.id for u in task.assignees}:
            task.assignees = assignees
            changed.add("assignees")
    for field, value in update_data.items():
        if getattr(task, field) != value:
            setattr(task, field, value)
            changed.add(field)

    if not changed:
        return TaskResponse.model_validate(task)

    await db.commit()
    response = TaskResponse.model_validate(task)

    action = ActivityAction.STATUS_UPDATED if changed == {"status"} else ActivityAction.TASK_UPDATED
    await hook.run(CommittedAction(
        project_id=project_id,
        actor_id=user.id,
        action=action,
        details=task.title,
        entity_type=EntityType.TASK,
        entity_id=task.id,
        notification_type=NotificationType.TASK,
        message=f"Task updated: {task.title}",
        event=TaskUpdated(task=response),
    ))
    return response


@router.delete("/{task_id}", response_model=SuccessResponse)
async def delete_task(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    roster: TaskRemover,
    user: CurrentUser,
    db: DbSession,
    hook: AfterCommit,
):
    """Delete a task and its comments."""
    task = await _get_task(db, project_id, task_id)
    title = task.title
    await db.delete(task)
    await db.commit()

    await hook.run(CommittedAction(
        project_id=project_id,
        actor_id=user.id,
        action=ActivityAction.TASK_DELETED,
        details=title,
        entity_type=EntityType.TASK,
        entity_id=task_id,
        notification_type=NotificationType.TASK,
        message=f"Task deleted: {title}",
        event=TaskDeleted(task_id=task_id, project_id=project_id),
    ))
    return SuccessResponse(message="Task deleted successfully")
