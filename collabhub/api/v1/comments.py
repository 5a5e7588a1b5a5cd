"""
Comment endpoints. Access follows the project the task belongs to.
"""

import uuid
from typing import List

from fastapi import APIRouter, status
from sqlalchemy import select

from collabhub.api.deps import AfterCommit, CurrentUser, DbSession, Registry
from collabhub.kernel.errors import NotFound
from collabhub.kernel.models.activity import ActivityAction, EntityType
from collabhub.kernel.models.notification import NotificationType
from collabhub.kernel.models.task import Comment, Task
from collabhub.kernel.models.user import User
from collabhub.kernel.permissions import guard
from collabhub.kernel.permissions.guard import Action
from collabhub.kernel.post_commit import CommittedAction
from collabhub.realtime.events import CommentAdded
from collabhub.schemas.task import CommentCreate, CommentResponse

router = APIRouter()


def comment_response(comment: Comment, author: User) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        task_id=comment.task_id,
        author_id=comment.author_id,
        author_name=author.name,
        author_email=author.email,
        content=comment.content,
        created_at=comment.created_at,
    )


async def _authorized_task(
    db,
    registry,
    task_id: uuid.UUID,
    user_id: uuid.UUID,
    action: Action,
) -> Task:
    """Load the task and check the caller against its project's roster."""
    task = await db.get(Task, task_id)
    if task is None:
        raise NotFound("Task not found")
    await registry.get_project(task.project_id)
    guard.check(action, await registry.roster(task.project_id), user_id)
    return task


@router.post(
    "/tasks/{task_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    task_id: uuid.UUID,
    data: CommentCreate,
    user: CurrentUser,
    db: DbSession,
    registry: Registry,
    hook: AfterCommit,
):
    """Comment on a task."""
    task = await _authorized_task(db, registry, task_id, user.id, Action.ADD_COMMENT)

    comment = Comment(task_id=task.id, author_id=user.id, content=data.content)
    db.add(comment)
    await db.commit()

    response = comment_response(comment, user)
    await hook.run(CommittedAction(
        project_id=task.project_id,
        actor_id=user.id,
        action=ActivityAction.COMMENT_ADDED,
        details=task.title,
        entity_type=EntityType.COMMENT,
        entity_id=comment.id,
        notification_type=NotificationType.COMMENT,
        message=f"New comment on task: {task.title}",
        event=CommentAdded(comment=response),
    ))
    return response


@router.get("/tasks/{task_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    task_id: uuid.UUID,
    user: CurrentUser,
    db: DbSession,
    registry: Registry,
):
    """Comments on a task, oldest first."""
    await _authorized_task(db, registry, task_id, user.id, Action.READ_COMMENTS)

    query = (
        select(Comment, User)
        .join(User, Comment.author_id == User.id)
        .where(Comment.task_id == task_id)
        .order_by(Comment.created_at, Comment.id)
    )
    result = await db.execute(query)
    return [comment_response(comment, author) for comment, author in result.all()]
