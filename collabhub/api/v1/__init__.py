"""
API v1 routes.
"""

from fastapi import APIRouter

from collabhub.api.v1 import activity, comments, members, notifications, projects, realtime, tasks

router = APIRouter()

router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(members.router, prefix="/projects/{project_id}/members", tags=["Members"])
router.include_router(members.invitations_router, tags=["Members"])
router.include_router(tasks.router, prefix="/projects/{project_id}/tasks", tags=["Tasks"])
router.include_router(comments.router, tags=["Comments"])
router.include_router(activity.router, tags=["Activity"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(realtime.router, tags=["Realtime"])
