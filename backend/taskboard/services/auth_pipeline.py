"""Per-request authentication decision.

The pipeline turns an Authorization header into an AuthContext. It only
reads: every failed check yields an anonymous context and it never raises.
Enforcement (401/403) is the job of the authorization helpers.
"""

import logging
from dataclasses import dataclass
from enum import StrEnum

from prometheus_client import Counter
from sqlalchemy.exc import SQLAlchemyError

from taskboard.models.enums import TokenType
from taskboard.models.user import User
from taskboard.services.errors import StoreError
from taskboard.services.token_codec import TokenClaims, TokenCodec, VerificationStatus
from taskboard.services.token_store import TokenStore
from taskboard.services.users import UserRepository

logger = logging.getLogger(__name__)


class AuthOutcome(StrEnum):
    AUTHENTICATED = "authenticated"
    NO_TOKEN = "no_token"
    INVALID_TOKEN = "invalid_token"
    EXPIRED_TOKEN = "expired_token"
    BLACKLISTED = "blacklisted"
    FORCE_LOGGED_OUT = "force_logged_out"
    UNKNOWN_USER = "unknown_user"
    INACTIVE_USER = "inactive_user"
    NO_ACTIVE_SESSION = "no_active_session"
    STORE_ERROR = "store_error"


AUTH_DECISIONS = Counter(
    "taskboard_auth_decisions_total",
    "Authentication decisions by outcome",
    ["outcome"],
)


@dataclass(frozen=True)
class AuthContext:
    """The authentication state of one request."""

    user: User | None = None
    claims: TokenClaims | None = None
    token: str | None = None
    outcome: AuthOutcome = AuthOutcome.NO_TOKEN

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @classmethod
    def anonymous(cls, outcome: AuthOutcome = AuthOutcome.NO_TOKEN) -> "AuthContext":
        return cls(outcome=outcome)


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from a ``Bearer <token>`` header, or None."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1] or None


class AuthPipeline:
    def __init__(self, codec: TokenCodec, store: TokenStore, users: UserRepository):
        self.codec = codec
        self.store = store
        self.users = users

    async def resolve(self, authorization: str | None) -> AuthContext:
        try:
            context = await self._resolve(authorization)
        except (StoreError, SQLAlchemyError) as e:
            logger.error(
                f"Authentication store lookup failed, treating request as anonymous: {e}",
                extra={"outcome": AuthOutcome.STORE_ERROR.value},
            )
            context = AuthContext.anonymous(AuthOutcome.STORE_ERROR)
        AUTH_DECISIONS.labels(outcome=context.outcome.value).inc()
        return context

    async def _resolve(self, authorization: str | None) -> AuthContext:
        token = extract_bearer_token(authorization)
        if token is None:
            return AuthContext.anonymous(AuthOutcome.NO_TOKEN)

        verification = self.codec.verify(token, TokenType.ACCESS)
        if not verification.is_valid or verification.claims is None:
            outcome = (
                AuthOutcome.EXPIRED_TOKEN
                if verification.status is VerificationStatus.EXPIRED
                else AuthOutcome.INVALID_TOKEN
            )
            return AuthContext.anonymous(outcome)
        claims = verification.claims

        if await self.store.is_access_token_blacklisted(token):
            logger.info(
                "Rejected blacklisted access token",
                extra={"user_id": str(claims.user_id), "outcome": AuthOutcome.BLACKLISTED.value},
            )
            return AuthContext.anonymous(AuthOutcome.BLACKLISTED)

        if await self.store.was_issued_before_force_logout(claims.user_id, claims.issued_at):
            logger.info(
                "Rejected access token issued before force logout",
                extra={
                    "user_id": str(claims.user_id),
                    "outcome": AuthOutcome.FORCE_LOGGED_OUT.value,
                },
            )
            return AuthContext.anonymous(AuthOutcome.FORCE_LOGGED_OUT)

        user = await self.users.find_by_id(claims.user_id)
        if user is None:
            logger.warning(
                f"Access token references unknown user {claims.user_id}",
                extra={"user_id": str(claims.user_id), "outcome": AuthOutcome.UNKNOWN_USER.value},
            )
            return AuthContext.anonymous(AuthOutcome.UNKNOWN_USER)
        if not user.is_active:
            return AuthContext.anonymous(AuthOutcome.INACTIVE_USER)

        # Access tokens are only honoured while the user holds a live session
        if await self.store.count_active_refresh_tokens(user.id) == 0:
            return AuthContext.anonymous(AuthOutcome.NO_ACTIVE_SESSION)

        return AuthContext(
            user=user,
            claims=claims,
            token=token,
            outcome=AuthOutcome.AUTHENTICATED,
        )
