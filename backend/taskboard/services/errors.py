"""Exception hierarchy for authentication and authorization.

Every error carries an HTTP status and a stable machine-readable code; the
API layer turns them into ``{"detail": ..., "code": ...}`` responses.
"""


class AuthError(Exception):
    """Base exception for auth errors."""

    status_code: int = 400
    code: str = "AUTH_ERROR"
    default_message: str = "Authentication error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthenticatedError(AuthError):
    """No valid authentication on the request."""

    status_code = 401
    code = "UNAUTHENTICATED"
    default_message = "Authentication required"


class InvalidCredentialsError(AuthError):
    """Invalid email or password."""

    status_code = 401
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class UserInactiveError(AuthError):
    """User account is deactivated."""

    status_code = 403
    code = "USER_INACTIVE"
    default_message = "Account is deactivated"


class InvalidRefreshTokenError(AuthError):
    """Refresh token failed verification, was revoked, expired or replayed."""

    status_code = 401
    code = "INVALID_REFRESH_TOKEN"
    default_message = "Invalid or expired refresh token"


class ForbiddenError(AuthError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Insufficient permissions"


class NotFoundError(AuthError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class UserAlreadyExistsError(AuthError):
    status_code = 409
    code = "USER_ALREADY_EXISTS"
    default_message = "A user with this email already exists"


class TooManySessionsError(AuthError):
    """The user already holds the maximum number of active sessions."""

    status_code = 409
    code = "TOO_MANY_SESSIONS"
    default_message = "Maximum active sessions reached"

    def __init__(self, active: int, limit: int, message: str | None = None):
        self.active = active
        self.limit = limit
        super().__init__(
            message
            or f"Maximum active sessions reached ({active}/{limit}). "
            "Log out of another device first."
        )


class RateLimitedError(AuthError):
    status_code = 429
    code = "RATE_LIMITED"
    default_message = "Too many login attempts. Please try again later."


class StoreError(AuthError):
    """The token store could not complete a read or write."""

    status_code = 503
    code = "STORE_ERROR"
    default_message = "Session store unavailable"


class TokenSigningError(AuthError):
    """A token could not be signed; indicates broken key configuration."""

    status_code = 500
    code = "TOKEN_SIGNING_FAILED"
    default_message = "Could not sign token"
