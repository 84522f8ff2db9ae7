"""Shared FastAPI dependencies: services, authentication context, role guards."""

from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core import get_db, get_settings
from taskboard.models.enums import UserRole
from taskboard.models.user import User
from taskboard.services.auth import AuthService
from taskboard.services.auth_pipeline import AuthContext, AuthPipeline
from taskboard.services.authorization import PermissionService, require_auth, require_role
from taskboard.services.force_logout import ForceLogoutService
from taskboard.services.session_limiter import SessionLimiter
from taskboard.services.token_codec import TokenCodec
from taskboard.services.token_store import TokenStore
from taskboard.services.users import UserRepository


@lru_cache
def get_token_codec() -> TokenCodec:
    """Process-wide codec built from settings."""
    return TokenCodec.from_settings(get_settings())


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
) -> AuthService:
    """Dependency to get auth service."""
    return AuthService(db, codec, get_settings())


def get_permission_service(db: AsyncSession = Depends(get_db)) -> PermissionService:
    return PermissionService(db)


def get_force_logout_service(
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
) -> ForceLogoutService:
    return ForceLogoutService(db, access_token_ttl=codec.access_ttl, clock=codec.clock)


def get_session_limiter(
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
) -> SessionLimiter:
    return SessionLimiter(TokenStore(db, clock=codec.clock), get_settings().max_sessions_per_user)


async def get_auth_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
) -> AuthContext:
    """Resolve the request's Authorization header; anonymous when it does not check out."""
    pipeline = AuthPipeline(codec, TokenStore(db, clock=codec.clock), UserRepository(db))
    return await pipeline.resolve(request.headers.get("Authorization"))


async def get_current_user(context: AuthContext = Depends(get_auth_context)) -> User:
    """Dependency to get the current authenticated user."""
    return require_auth(context)


async def get_current_admin(context: AuthContext = Depends(get_auth_context)) -> User:
    return require_role(context, UserRole.ADMIN)
