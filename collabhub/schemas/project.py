"""
Project and roster schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from collabhub.kernel.models.project import MemberRole, MembershipStatus


class ProjectCreate(BaseModel):
    """Project creation request."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)


class ProjectUpdate(BaseModel):
    """Project update request. Omitted fields keep their value."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v):
        if v is None:
            raise ValueError("name may be omitted but not null")
        return v


class UserSummary(BaseModel):
    """Public identity of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str


class MemberResponse(BaseModel):
    """One roster entry."""

    entry_id: uuid.UUID
    user: UserSummary
    role: MemberRole
    status: MembershipStatus
    invited_by: uuid.UUID
    joined_at: Optional[datetime]


class ProjectResponse(BaseModel):
    """Project with its roster."""

    id: uuid.UUID
    name: str
    description: Optional[str]
    owner_id: uuid.UUID
    members: List[MemberResponse] = []
    created_at: datetime
    updated_at: datetime


class ProjectListResponse(BaseModel):
    """Project list item, from the caller's point of view."""

    id: uuid.UUID
    name: str
    description: Optional[str]
    owner_id: uuid.UUID
    role: MemberRole
    status: MembershipStatus
    is_owner: bool = False
    updated_at: datetime


class InviteRequest(BaseModel):
    """Invite a user by email; the entry stays pending until they accept."""

    email: str = Field(..., min_length=3, max_length=255)
    role: MemberRole = MemberRole.MEMBER


class AddMemberRequest(BaseModel):
    """Add a user by email as an accepted member."""

    email: str = Field(..., min_length=3, max_length=255)
    role: MemberRole = MemberRole.MEMBER


class RoleChangeRequest(BaseModel):
    """Owner-forced role change."""

    role: MemberRole


class InvitationResponse(BaseModel):
    """A pending invitation addressed to the caller."""

    entry_id: uuid.UUID
    project_id: uuid.UUID
    project_name: str
    role: MemberRole
    invited_by: uuid.UUID
