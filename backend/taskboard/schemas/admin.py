"""Pydantic schemas for session and permission administration."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from taskboard.models.enums import PermissionLevel, ProjectRole, ResourceType, UserRole


class UserSessionInfo(BaseModel):
    """Active session usage of one user."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    email: str
    active: int = Field(description="Number of active refresh tokens")
    max_allowed: int
    is_at_limit: bool


class SessionListResponse(BaseModel):
    users: list[UserSessionInfo]
    total: int
    max_sessions_per_user: int


class ForceLogoutResponse(BaseModel):
    success: bool
    user_id: UUID
    revoked_sessions: int


class UpdateRoleRequest(BaseModel):
    role: UserRole


class PermissionGrantRequest(BaseModel):
    user_id: UUID
    resource_type: ResourceType
    resource_id: UUID
    permission: PermissionLevel


class PermissionRevokeRequest(BaseModel):
    user_id: UUID
    resource_type: ResourceType
    resource_id: UUID


class PermissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    resource_type: ResourceType
    resource_id: UUID
    permission: PermissionLevel
    created_at: datetime


class AccessCheckResponse(BaseModel):
    """Result of a successful access check."""

    allowed: bool = True
    user_id: UUID
    resource_type: ResourceType
    resource_id: UUID
    permission: PermissionLevel | None = None
    project_role: ProjectRole | None = None
