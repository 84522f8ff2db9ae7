"""Administrative endpoints: session overview, force logout, roles and permissions."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.api.deps import (
    get_current_admin,
    get_force_logout_service,
    get_permission_service,
    get_session_limiter,
)
from taskboard.core import get_db
from taskboard.models.user import User
from taskboard.schemas.admin import (
    ForceLogoutResponse,
    PermissionGrantRequest,
    PermissionResponse,
    PermissionRevokeRequest,
    SessionListResponse,
    UpdateRoleRequest,
    UserSessionInfo,
)
from taskboard.schemas.auth import MessageResponse, UserResponse
from taskboard.services.authorization import PermissionService
from taskboard.services.errors import NotFoundError
from taskboard.services.force_logout import ForceLogoutService
from taskboard.services.session_limiter import SessionLimiter
from taskboard.services.users import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/sessions", response_model=SessionListResponse)
async def list_user_sessions(
    near_limit: bool = Query(False, description="Only users within one session of the limit"),
    admin: User = Depends(get_current_admin),
    limiter: SessionLimiter = Depends(get_session_limiter),
) -> SessionListResponse:
    """List users holding active sessions with their usage against the limit."""
    usage = await limiter.list_users_near_limit(near_only=near_limit)
    return SessionListResponse(
        users=[UserSessionInfo.model_validate(entry) for entry in usage],
        total=len(usage),
        max_sessions_per_user=limiter.max_sessions,
    )


@router.post("/users/{user_id}/force-logout", response_model=ForceLogoutResponse)
async def force_logout_user(
    user_id: UUID,
    admin: User = Depends(get_current_admin),
    service: ForceLogoutService = Depends(get_force_logout_service),
) -> ForceLogoutResponse:
    """End every session of a user.

    All refresh tokens are revoked and access tokens issued before now stop
    authenticating immediately.
    """
    revoked = await service.force_logout_user(user_id)
    logger.warning(f"Admin {admin.email} force-logged-out user {user_id}")
    return ForceLogoutResponse(success=True, user_id=user_id, revoked_sessions=revoked)


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: UUID,
    request: UpdateRoleRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Change a user's role; takes effect on the user's next request."""
    user = await UserRepository(db).update_role(user_id, request.role)
    logger.info(f"Admin {admin.email} set role of {user.email} to {request.role}")
    return UserResponse.model_validate(user)


@router.get("/users/{user_id}/permissions", response_model=list[PermissionResponse])
async def list_user_permissions(
    user_id: UUID,
    admin: User = Depends(get_current_admin),
    permissions: PermissionService = Depends(get_permission_service),
) -> list[PermissionResponse]:
    grants = await permissions.list_permissions(user_id)
    return [PermissionResponse.model_validate(grant) for grant in grants]


@router.post(
    "/permissions", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED
)
async def grant_permission(
    request: PermissionGrantRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    permissions: PermissionService = Depends(get_permission_service),
) -> PermissionResponse:
    """Grant (or change) a user's permission on one resource."""
    if await UserRepository(db).find_by_id(request.user_id) is None:
        raise NotFoundError("User not found")
    grant = await permissions.grant_permission(
        request.user_id, request.resource_type, request.resource_id, request.permission
    )
    return PermissionResponse.model_validate(grant)


@router.delete("/permissions", response_model=MessageResponse)
async def revoke_permission(
    request: PermissionRevokeRequest,
    admin: User = Depends(get_current_admin),
    permissions: PermissionService = Depends(get_permission_service),
) -> MessageResponse:
    revoked = await permissions.revoke_permission(
        request.user_id, request.resource_type, request.resource_id
    )
    if not revoked:
        raise NotFoundError("Permission not found")
    return MessageResponse(message="Permission revoked")
