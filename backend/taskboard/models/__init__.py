# Taskboard Models
from taskboard.models.base import BaseModel
from taskboard.models.blacklisted_access_token import BlacklistedAccessToken
from taskboard.models.enums import (
    BlacklistReason,
    PermissionLevel,
    ProjectRole,
    ResourceType,
    TokenType,
    UserRole,
)
from taskboard.models.permission import Permission
from taskboard.models.refresh_token import RefreshToken
from taskboard.models.resources import Comment, Project, ProjectMember, Task
from taskboard.models.user import User

__all__ = [
    "BaseModel",
    "BlacklistReason",
    "BlacklistedAccessToken",
    "Comment",
    "Permission",
    "PermissionLevel",
    "Project",
    "ProjectMember",
    "ProjectRole",
    "RefreshToken",
    "ResourceType",
    "Task",
    "TokenType",
    "User",
    "UserRole",
]
