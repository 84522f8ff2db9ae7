"""Role, permission and project-membership enforcement.

The ``require_*`` helpers take the AuthContext produced by the auth pipeline
and either return the authenticated user or raise UnauthenticatedError /
ForbiddenError. Administrators pass every resource and project check.
"""

import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.models.enums import PermissionLevel, ProjectRole, ResourceType, UserRole
from taskboard.models.permission import Permission
from taskboard.models.resources import Comment, Project, ProjectMember, Task
from taskboard.models.user import User
from taskboard.services.auth_pipeline import AuthContext
from taskboard.services.errors import ForbiddenError, UnauthenticatedError
from taskboard.services.token_store import store_operation

logger = logging.getLogger(__name__)

# Column holding the owning user for each resource type
_OWNER_COLUMNS = {
    ResourceType.PROJECT: Project.owner_id,
    ResourceType.TASK: Task.assigned_to,
    ResourceType.COMMENT: Comment.user_id,
}
_RESOURCE_IDS = {
    ResourceType.PROJECT: Project.id,
    ResourceType.TASK: Task.id,
    ResourceType.COMMENT: Comment.id,
}


def has_role(user: User, required: UserRole) -> bool:
    try:
        return UserRole(user.role).rank >= required.rank
    except ValueError:
        logger.warning(f"User {user.id} has unknown role {user.role!r}")
        return False


class PermissionService:
    """Lookups and administration of explicit permissions and ownership."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @store_operation
    async def has_permission(
        self,
        user_id: UUID,
        resource_type: ResourceType,
        resource_id: UUID,
        required: PermissionLevel,
    ) -> bool:
        result = await self.session.execute(
            select(Permission.permission).where(
                Permission.user_id == user_id,
                Permission.resource_type == resource_type.value,
                Permission.resource_id == resource_id,
            )
        )
        granted = result.scalar_one_or_none()
        if granted is None:
            return False
        return PermissionLevel(granted).rank >= required.rank

    @store_operation
    async def is_resource_owner(
        self, user_id: UUID, resource_type: ResourceType, resource_id: UUID
    ) -> bool:
        """Project owner, task assignee or comment author."""
        owner_column = _OWNER_COLUMNS[resource_type]
        result = await self.session.execute(
            select(owner_column).where(_RESOURCE_IDS[resource_type] == resource_id)
        )
        owner_id = result.scalar_one_or_none()
        return owner_id is not None and owner_id == user_id

    @store_operation
    async def has_project_role(
        self, user_id: UUID, project_id: UUID, required: ProjectRole
    ) -> bool:
        result = await self.session.execute(
            select(ProjectMember.role).where(
                ProjectMember.user_id == user_id,
                ProjectMember.project_id == project_id,
                ProjectMember.is_deleted.is_(False),
            )
        )
        role = result.scalar_one_or_none()
        if role is None:
            return False
        return ProjectRole(role).rank >= required.rank

    @store_operation
    async def grant_permission(
        self,
        user_id: UUID,
        resource_type: ResourceType,
        resource_id: UUID,
        level: PermissionLevel,
    ) -> Permission:
        """Create or replace the grant for (user, resource)."""
        result = await self.session.execute(
            select(Permission).where(
                Permission.user_id == user_id,
                Permission.resource_type == resource_type.value,
                Permission.resource_id == resource_id,
            )
        )
        permission = result.scalar_one_or_none()
        if permission is None:
            permission = Permission(
                user_id=user_id,
                resource_type=resource_type.value,
                resource_id=resource_id,
                permission=level.value,
            )
            self.session.add(permission)
        else:
            permission.permission = level.value
        await self.session.flush()
        logger.info(f"Granted {level} on {resource_type}:{resource_id} to user {user_id}")
        return permission

    @store_operation
    async def revoke_permission(
        self, user_id: UUID, resource_type: ResourceType, resource_id: UUID
    ) -> bool:
        result = await self.session.execute(
            delete(Permission).where(
                Permission.user_id == user_id,
                Permission.resource_type == resource_type.value,
                Permission.resource_id == resource_id,
            )
        )
        revoked = result.rowcount > 0
        if revoked:
            logger.info(f"Revoked permission on {resource_type}:{resource_id} from user {user_id}")
        return revoked

    @store_operation
    async def list_permissions(self, user_id: UUID) -> list[Permission]:
        result = await self.session.execute(
            select(Permission)
            .where(Permission.user_id == user_id)
            .order_by(Permission.resource_type, Permission.created_at)
        )
        return list(result.scalars().all())


def require_auth(context: AuthContext) -> User:
    if context.user is None:
        raise UnauthenticatedError()
    return context.user


def require_role(context: AuthContext, role: UserRole) -> User:
    user = require_auth(context)
    if not has_role(user, role):
        raise ForbiddenError()
    return user


async def require_permission(
    context: AuthContext,
    permissions: PermissionService,
    resource_type: ResourceType,
    resource_id: UUID,
    level: PermissionLevel,
) -> User:
    """Admin bypass, then an explicit grant at or above level, then ownership."""
    user = require_auth(context)
    if has_role(user, UserRole.ADMIN):
        return user
    if await permissions.has_permission(user.id, resource_type, resource_id, level):
        return user
    if await permissions.is_resource_owner(user.id, resource_type, resource_id):
        return user
    raise ForbiddenError("Access denied")


async def require_project_role(
    context: AuthContext,
    permissions: PermissionService,
    project_id: UUID,
    role: ProjectRole,
) -> User:
    user = require_auth(context)
    if has_role(user, UserRole.ADMIN):
        return user
    if await permissions.has_project_role(user.id, project_id, role):
        return user
    raise ForbiddenError("Access denied")
