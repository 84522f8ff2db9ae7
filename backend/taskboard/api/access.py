"""Access checks for projects, tasks and comments.

Other services call these to ask whether the current user may act on a
resource; a 200 means yes, 401/403 means no.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from taskboard.api.deps import get_auth_context, get_permission_service
from taskboard.models.enums import PermissionLevel, ProjectRole, ResourceType
from taskboard.schemas.admin import AccessCheckResponse
from taskboard.services.auth_pipeline import AuthContext
from taskboard.services.authorization import (
    PermissionService,
    require_permission,
    require_project_role,
)

router = APIRouter(prefix="/access", tags=["access"])


@router.get("/resources/{resource_type}/{resource_id}", response_model=AccessCheckResponse)
async def check_resource_access(
    resource_type: ResourceType,
    resource_id: UUID,
    permission: PermissionLevel = Query(PermissionLevel.READ),
    context: AuthContext = Depends(get_auth_context),
    permissions: PermissionService = Depends(get_permission_service),
) -> AccessCheckResponse:
    user = await require_permission(context, permissions, resource_type, resource_id, permission)
    return AccessCheckResponse(
        user_id=user.id,
        resource_type=resource_type,
        resource_id=resource_id,
        permission=permission,
    )


@router.get("/projects/{project_id}", response_model=AccessCheckResponse)
async def check_project_access(
    project_id: UUID,
    role: ProjectRole = Query(ProjectRole.VIEWER),
    context: AuthContext = Depends(get_auth_context),
    permissions: PermissionService = Depends(get_permission_service),
) -> AccessCheckResponse:
    user = await require_project_role(context, permissions, project_id, role)
    return AccessCheckResponse(
        user_id=user.id,
        resource_type=ResourceType.PROJECT,
        resource_id=project_id,
        project_role=role,
    )
