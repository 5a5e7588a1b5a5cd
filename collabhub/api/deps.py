"""
FastAPI dependencies for authentication, authorization, database sessions
and the process-owned collaboration services.
"""

import uuid
from typing import Annotated, List, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collabhub.database import get_db, get_session_factory
from collabhub.kernel.identity.directory import UserDirectory
from collabhub.kernel.identity.tokens import verify_access_token
from collabhub.kernel.membership import MembershipRegistry, ProjectLocks
from collabhub.kernel.models.project import ProjectMember
from collabhub.kernel.models.user import User
from collabhub.kernel.permissions import guard
from collabhub.kernel.permissions.guard import Action
from collabhub.kernel.post_commit import PostCommitHook
from collabhub.realtime.bus import EventBus


# Security scheme
security = HTTPBearer(auto_error=False)


DbSession = Annotated[AsyncSession, Depends(get_db)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


async def authenticate_token(token: Optional[str], db: AsyncSession) -> Optional[User]:
    """Resolve a bearer token to an active user, or None."""
    if not token:
        return None
    payload = verify_access_token(token)
    if not payload:
        return None
    user = await UserDirectory(db).get_user_by_id(payload.user_id)
    if not user or not user.is_active:
        return None
    return user


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
) -> User:
    """Get current authenticated user or raise 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await authenticate_token(credentials.credentials, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_request_id(request: Request) -> Optional[str]:
    """Get request correlation ID (set by RequestIdMiddleware)."""
    return getattr(request.state, "request_id", None)


# Process-owned services, created in the application lifespan

def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_project_locks(request: Request) -> ProjectLocks:
    return request.app.state.project_locks


Bus = Annotated[EventBus, Depends(get_event_bus)]
Locks = Annotated[ProjectLocks, Depends(get_project_locks)]


def get_registry(db: DbSession, locks: Locks) -> MembershipRegistry:
    return MembershipRegistry(db, locks)


def get_post_commit_hook(factory: SessionFactory, bus: Bus) -> PostCommitHook:
    return PostCommitHook(factory, bus)


Registry = Annotated[MembershipRegistry, Depends(get_registry)]
AfterCommit = Annotated[PostCommitHook, Depends(get_post_commit_hook)]


class ProjectAccess:
    """
    Dependency class that loads the project's roster and runs the guard.

    Resolves to the roster snapshot the decision was made on.

    Usage:
        @router.get("/projects/{project_id}")
        async def get_project(
            project_id: uuid.UUID,
            roster: Annotated[List[ProjectMember], Depends(ProjectAccess(Action.READ_PROJECT))],
        ):
            ...
    """

    def __init__(self, action: Action):
        self.action = action

    async def __call__(
        self,
        project_id: uuid.UUID,
        user: CurrentUser,
        registry: Registry,
    ) -> List[ProjectMember]:
        await registry.get_project(project_id)
        roster = await registry.roster(project_id)
        guard.check(self.action, roster, user.id)
        return roster


# Convenience guard dependencies
RequireMember = Annotated[List[ProjectMember], Depends(ProjectAccess(Action.READ_PROJECT))]
RequireOwner = Annotated[List[ProjectMember], Depends(ProjectAccess(Action.UPDATE_PROJECT))]
