# Taskboard Pydantic Schemas
from taskboard.schemas.admin import (
    AccessCheckResponse,
    ForceLogoutResponse,
    PermissionGrantRequest,
    PermissionResponse,
    PermissionRevokeRequest,
    SessionListResponse,
    UpdateRoleRequest,
    UserSessionInfo,
)
from taskboard.schemas.auth import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    RenewResponse,
    TokenResponse,
    UserResponse,
)

__all__ = [
    "AccessCheckResponse",
    "AuthResponse",
    "ForceLogoutResponse",
    "LoginRequest",
    "LogoutRequest",
    "MessageResponse",
    "PermissionGrantRequest",
    "PermissionResponse",
    "PermissionRevokeRequest",
    "RefreshRequest",
    "RegisterRequest",
    "RenewResponse",
    "SessionListResponse",
    "TokenResponse",
    "UpdateRoleRequest",
    "UserResponse",
    "UserSessionInfo",
]
