"""Closed enumerations shared by models, services and schemas.

Each enum is stored as a plain string column backed by a named PostgreSQL
enum type, the same way the rest of the models declare their status columns.
"""

import enum

from sqlalchemy import Enum


class UserRole(enum.StrEnum):
    DEVELOPER = "DEVELOPER"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"

    @property
    def rank(self) -> int:
        return _USER_ROLE_RANK[self]


class PermissionLevel(enum.StrEnum):
    READ = "READ"
    WRITE = "WRITE"
    DELETE = "DELETE"
    ADMIN = "ADMIN"

    @property
    def rank(self) -> int:
        return _PERMISSION_RANK[self]


class ProjectRole(enum.StrEnum):
    VIEWER = "VIEWER"
    EDITOR = "EDITOR"
    OWNER = "OWNER"

    @property
    def rank(self) -> int:
        return _PROJECT_ROLE_RANK[self]


class ResourceType(enum.StrEnum):
    PROJECT = "PROJECT"
    TASK = "TASK"
    COMMENT = "COMMENT"


class BlacklistReason(enum.StrEnum):
    FORCE_LOGOUT = "FORCE_LOGOUT"
    MANUAL_LOGOUT = "MANUAL_LOGOUT"
    SECURITY_BREACH = "SECURITY_BREACH"


class TokenType(enum.StrEnum):
    ACCESS = "access"
    REFRESH = "refresh"


_USER_ROLE_RANK = {UserRole.DEVELOPER: 1, UserRole.MANAGER: 2, UserRole.ADMIN: 3}
_PERMISSION_RANK = {
    PermissionLevel.READ: 1,
    PermissionLevel.WRITE: 2,
    PermissionLevel.DELETE: 3,
    PermissionLevel.ADMIN: 4,
}
_PROJECT_ROLE_RANK = {ProjectRole.VIEWER: 1, ProjectRole.EDITOR: 2, ProjectRole.OWNER: 3}


def _column_type(enum_cls: type[enum.Enum], name: str) -> Enum:
    return Enum(*[member.value for member in enum_cls], name=name, create_constraint=True)


UserRoleType = _column_type(UserRole, "user_role")
PermissionLevelType = _column_type(PermissionLevel, "permission_level")
ProjectRoleType = _column_type(ProjectRole, "project_role")
ResourceTypeType = _column_type(ResourceType, "resource_type")
BlacklistReasonType = _column_type(BlacklistReason, "blacklist_reason")
