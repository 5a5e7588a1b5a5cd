"""
Pydantic schemas for API request/response validation.
"""

from collabhub.schemas.project import (
    ProjectCreate,
    ProjectUpdate,
    ProjectResponse,
    ProjectListResponse,
    UserSummary,
    MemberResponse,
    InviteRequest,
    AddMemberRequest,
    RoleChangeRequest,
    InvitationResponse,
)
from collabhub.schemas.task import (
    TaskCreate,
    TaskUpdate,
    TaskResponse,
    CommentCreate,
    CommentResponse,
)
from collabhub.schemas.activity import (
    ActorSummary,
    ActivityResponse,
    NotificationResponse,
)
from collabhub.schemas.common import (
    ErrorResponse,
    SuccessResponse,
    HealthResponse,
)

__all__ = [
    # Project & roster
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectResponse",
    "ProjectListResponse",
    "UserSummary",
    "MemberResponse",
    "InviteRequest",
    "AddMemberRequest",
    "RoleChangeRequest",
    "InvitationResponse",
    # Tasks & comments
    "TaskCreate",
    "TaskUpdate",
    "TaskResponse",
    "CommentCreate",
    "CommentResponse",
    # Activity & notifications
    "ActorSummary",
    "ActivityResponse",
    "NotificationResponse",
    # Common
    "ErrorResponse",
    "SuccessResponse",
    "HealthResponse",
]
