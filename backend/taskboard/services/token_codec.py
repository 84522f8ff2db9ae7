"""JWT access/refresh token issuance and verification.

Access and refresh tokens are signed with two independent secrets so a
leaked refresh secret cannot mint access tokens and vice versa. Verification
never raises: it reports a status the caller turns into a decision.
"""

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any
from uuid import UUID

import jwt
from jwt.exceptions import InvalidSignatureError, PyJWTError

from taskboard.core.config import Settings
from taskboard.models.enums import TokenType
from taskboard.services.errors import TokenSigningError

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "type", "jti", "iat", "exp"]


class VerificationStatus(StrEnum):
    VALID = "VALID"
    EXPIRED = "EXPIRED"
    MALFORMED = "MALFORMED"
    BAD_SIGNATURE = "BAD_SIGNATURE"
    WRONG_TYPE = "WRONG_TYPE"


@dataclass(frozen=True)
class TokenClaims:
    """Decoded token payload."""

    user_id: UUID
    token_type: TokenType
    token_id: str
    issued_at: datetime
    expires_at: datetime
    email: str | None = None
    role: str | None = None
    # Access tokens only: token_id of the refresh record they were issued with
    session_id: str | None = None


@dataclass(frozen=True)
class IssuedToken:
    token: str
    claims: TokenClaims


@dataclass(frozen=True)
class TokenVerification:
    status: VerificationStatus
    claims: TokenClaims | None = None

    @property
    def is_valid(self) -> bool:
        return self.status is VerificationStatus.VALID


def _utcnow() -> datetime:
    return datetime.now(UTC)


def generate_token_id() -> str:
    """Random hex joined with a millisecond timestamp; unique per issuance."""
    return f"{secrets.token_hex(16)}{int(time.time() * 1000):x}"


class TokenCodec:
    """Stateless signer/verifier for access and refresh JWTs."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            access_ttl=settings.access_token_ttl,
            refresh_ttl=settings.refresh_token_ttl,
            algorithm=settings.jwt_algorithm,
        )

    def _secret_for(self, token_type: TokenType) -> str:
        return self.access_secret if token_type is TokenType.ACCESS else self.refresh_secret

    def _encode(self, payload: dict[str, Any], token_type: TokenType) -> str:
        try:
            token = jwt.encode(payload, self._secret_for(token_type), algorithm=self.algorithm)
        except (PyJWTError, NotImplementedError, TypeError, ValueError) as e:
            logger.critical(f"Failed to sign {token_type} token: {e}")
            raise TokenSigningError(f"Could not sign {token_type} token") from e
        # PyJWT 2.x returns str; older type stubs may declare bytes
        return str(token)

    def issue_access(self, user: Any, session_id: str | None = None) -> IssuedToken:
        """Create a short-lived access token, bound to a session when given."""
        now = self.clock()
        expires_at = now + self.access_ttl
        token_id = secrets.token_hex(16)
        role = str(user.role)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "role": role,
            "type": TokenType.ACCESS.value,
            "jti": token_id,
            # Sub-second iat so force-logout comparisons are exact
            "iat": now.timestamp(),
            "exp": expires_at.timestamp(),
        }
        if session_id is not None:
            payload["sid"] = session_id
        token = self._encode(payload, TokenType.ACCESS)
        claims = TokenClaims(
            user_id=user.id,
            token_type=TokenType.ACCESS,
            token_id=token_id,
            issued_at=now,
            expires_at=expires_at,
            email=user.email,
            role=role,
            session_id=session_id,
        )
        return IssuedToken(token=token, claims=claims)

    def issue_refresh(self, user: Any, token_id: str | None = None) -> IssuedToken:
        """Create a long-lived refresh token; its jti is the persisted tokenId.

        Passing an existing token_id re-signs that session with a fresh expiry.
        """
        now = self.clock()
        expires_at = now + self.refresh_ttl
        token_id = token_id or generate_token_id()
        payload = {
            "sub": str(user.id),
            "type": TokenType.REFRESH.value,
            "jti": token_id,
            "iat": now.timestamp(),
            "exp": expires_at.timestamp(),
        }
        token = self._encode(payload, TokenType.REFRESH)
        claims = TokenClaims(
            user_id=user.id,
            token_type=TokenType.REFRESH,
            token_id=token_id,
            issued_at=now,
            expires_at=expires_at,
        )
        return IssuedToken(token=token, claims=claims)

    def verify(self, token: str, expected_type: TokenType) -> TokenVerification:
        """Verify signature, structure, type and expiry of a token."""
        try:
            payload = jwt.decode(
                token,
                self._secret_for(expected_type),
                algorithms=[self.algorithm],
                # Expiry is checked against the injected clock below
                options={"require": REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
        except InvalidSignatureError:
            logger.warning(f"Rejected {expected_type} token with invalid signature")
            return TokenVerification(VerificationStatus.BAD_SIGNATURE)
        except PyJWTError as e:
            logger.warning(f"Rejected malformed {expected_type} token: {e}")
            return TokenVerification(VerificationStatus.MALFORMED)

        if payload.get("type") != expected_type.value:
            logger.warning(
                f"Rejected token of type {payload.get('type')!r}, expected {expected_type}"
            )
            return TokenVerification(VerificationStatus.WRONG_TYPE)

        try:
            claims = TokenClaims(
                user_id=UUID(str(payload["sub"])),
                token_type=expected_type,
                token_id=str(payload["jti"]),
                issued_at=datetime.fromtimestamp(float(payload["iat"]), UTC),
                expires_at=datetime.fromtimestamp(float(payload["exp"]), UTC),
                email=payload.get("email"),
                role=payload.get("role"),
                session_id=payload.get("sid"),
            )
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning(f"Rejected {expected_type} token with invalid claims: {e}")
            return TokenVerification(VerificationStatus.MALFORMED)

        if self.clock() >= claims.expires_at:
            logger.debug(f"Expired {expected_type} token for user {claims.user_id}")
            return TokenVerification(VerificationStatus.EXPIRED)

        return TokenVerification(VerificationStatus.VALID, claims)
