"""Login, refresh, logout and registration endpoints under /auth."""

import logging
import time
from collections import defaultdict

from fastapi import APIRouter, Depends, Request, status

from taskboard.api.deps import get_auth_context, get_auth_service, get_current_user
from taskboard.core import settings
from taskboard.models.user import User
from taskboard.schemas.auth import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    RenewResponse,
    UserResponse,
)
from taskboard.services.auth import AuthService, TokenPair
from taskboard.services.auth_pipeline import AuthContext
from taskboard.services.errors import (
    InvalidCredentialsError,
    RateLimitedError,
    UserInactiveError,
)

logger = logging.getLogger(__name__)

# Rate limiting for failed login attempts
_login_attempts: dict[str, list[float]] = defaultdict(list)
_LOGIN_WINDOW = 60  # seconds


def _check_login_rate_limit(client_ip: str) -> None:
    """Raise RateLimitedError once an IP has used up its failed logins for the window."""
    now = time.monotonic()
    attempts = [t for t in _login_attempts[client_ip] if now - t < _LOGIN_WINDOW]
    if attempts:
        _login_attempts[client_ip] = attempts
    else:
        _login_attempts.pop(client_ip, None)
    if len(attempts) >= settings.login_rate_limit_per_minute:
        logger.warning("Login rate limit exceeded", extra={"client_ip": client_ip})
        raise RateLimitedError()


def _record_login_attempt(client_ip: str) -> None:
    """Count one failed login against the client IP."""
    _login_attempts[client_ip].append(time.monotonic())


def _auth_response(user: User, tokens: TokenPair) -> AuthResponse:
    return AuthResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
        user=UserResponse.model_validate(user),
    )


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Create an account and return tokens for its first session."""
    user, tokens = await auth_service.register(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
    )
    return _auth_response(user, tokens)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    http_request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Open a new session and return its access/refresh pair.

    Fails with TOO_MANY_SESSIONS when the user already holds the maximum
    number of active sessions. Failed attempts are rate limited per IP.
    """
    client_ip = http_request.client.host if http_request.client else "unknown"
    _check_login_rate_limit(client_ip)

    try:
        user, tokens = await auth_service.login(email=request.email, password=request.password)
    except (InvalidCredentialsError, UserInactiveError):
        _record_login_attempt(client_ip)
        raise
    return _auth_response(user, tokens)


@router.post("/refresh", response_model=AuthResponse)
async def refresh_tokens(
    request: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Exchange a refresh token for a new token pair.

    The presented refresh token is revoked and a new pair is returned
    (token rotation); presenting it again fails.
    """
    user, tokens = await auth_service.refresh(request.refresh_token)
    return _auth_response(user, tokens)


@router.post("/renew", response_model=RenewResponse)
async def renew_session(
    request: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> RenewResponse:
    """Extend the session behind a refresh token without rotating it.

    The returned refresh token carries the same session id and a fresh
    expiry; access tokens already issued for the session stay valid.
    """
    user, renewed = await auth_service.renew(request.refresh_token)
    return RenewResponse(
        refresh_token=renewed.token,
        refresh_expires_at=renewed.claims.expires_at,
        user=UserResponse.model_validate(user),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: LogoutRequest | None = None,
    context: AuthContext = Depends(get_auth_context),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Log out the current session.

    Blacklists the presented access token for the rest of its lifetime and
    revokes the session it belongs to, plus the refresh token in the body, if any.
    """
    refresh_token = request.refresh_token if request else None
    await auth_service.logout(context, refresh_token=refresh_token)
    if context.user is not None:
        logger.info(f"User logged out: {context.user.email}")
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Profile of the authenticated user."""
    return UserResponse.model_validate(current_user)
