"""Authentication service: registration, login, refresh rotation and logout."""

import logging
from dataclasses import dataclass

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.config import Settings
from taskboard.models.enums import BlacklistReason, TokenType, UserRole
from taskboard.models.user import User
from taskboard.services.auth_pipeline import AuthContext
from taskboard.services.errors import (
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    UserAlreadyExistsError,
    UserInactiveError,
)
from taskboard.services.session_limiter import SessionLimiter
from taskboard.services.token_codec import IssuedToken, TokenClaims, TokenCodec
from taskboard.services.token_store import TokenStore, hash_access_token
from taskboard.services.users import UserRepository

logger = logging.getLogger(__name__)

# Argon2id, 64 MiB memory cost
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    """Argon2id hash for storage in users.password_hash."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """True when the password matches; malformed hashes count as a mismatch."""
    try:
        ph.verify(password_hash, password)
        return True
    except (VerifyMismatchError, InvalidHashError):
        return False


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


class AuthService:
    """Service for session lifecycle operations.

    Every public method that writes commits its own transaction; a raised
    error leaves the rollback to the request's session dependency.
    """

    def __init__(self, session: AsyncSession, codec: TokenCodec, settings: Settings):
        self.session = session
        self.codec = codec
        self.settings = settings
        self.store = TokenStore(session, clock=codec.clock)
        self.users = UserRepository(session)
        self.limiter = SessionLimiter(self.store, settings.max_sessions_per_user)

    async def register(
        self, email: str, password: str, first_name: str = "", last_name: str = ""
    ) -> tuple[User, TokenPair]:
        """Create a DEVELOPER account and open its first session."""
        email = email.strip().lower()
        if await self.users.find_by_email(email) is not None:
            raise UserAlreadyExistsError()

        user = User(
            email=email,
            password_hash=hash_password(password),
            role=UserRole.DEVELOPER.value,
            first_name=first_name,
            last_name=last_name,
            is_active=True,
            last_login_at=self.codec.clock(),
        )
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent registration of the same email
            await self.session.rollback()
            raise UserAlreadyExistsError() from e

        tokens = await self._open_session(user)
        await self.session.commit()
        logger.info(f"Registered user {user.email}")
        return user, tokens

    async def authenticate(self, email: str, password: str) -> User:
        """Check credentials and return the user.

        Unknown email and wrong password raise the same InvalidCredentialsError.
        """
        user = await self.users.find_by_email(email)

        if user is None:
            # Same Argon2 cost as a real check, so response time does not reveal the email
            verify_password(password, hash_password("dummy"))
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        if not user.is_active:
            raise UserInactiveError()

        return user

    async def login(self, email: str, password: str) -> tuple[User, TokenPair]:
        user = await self.authenticate(email, password)

        # Row lock serialises concurrent logins so the limit check stays exact
        await self.store.lock_user_sessions(user.id)
        await self.limiter.ensure_capacity(user.id)

        tokens = await self._open_session(user)
        user.last_login_at = self.codec.clock()
        await self.session.commit()

        logger.info(f"User {user.email} logged in")
        return user, tokens

    async def refresh(self, refresh_token: str) -> tuple[User, TokenPair]:
        """Rotate a refresh token: revoke the presented one, issue a new pair."""
        claims, user = await self._live_session(refresh_token)

        # Same lock as login and force logout; a force logout either sees the
        # rotated record or makes the revoke below fail
        await self.store.lock_user_sessions(user.id)
        if not await self.store.revoke_refresh_record(claims.token_id):
            logger.warning(
                f"Refresh token {claims.token_id[:12]}... was rotated concurrently "
                f"for user {claims.user_id}"
            )
            raise InvalidRefreshTokenError()

        tokens = await self._open_session(user)
        await self.session.commit()
        logger.debug(f"Rotated refresh token for user {user.id}")
        return user, tokens

    async def renew(self, refresh_token: str) -> tuple[User, IssuedToken]:
        """Extend a session without rotating it.

        The refresh token is re-signed under the same token id with a fresh
        expiry, so access tokens bound to the session keep working. A token
        presented after a rotation, logout or force logout is rejected.
        """
        claims, user = await self._live_session(refresh_token)

        await self.store.lock_user_sessions(user.id)
        renewed = self.codec.issue_refresh(user, token_id=claims.token_id)
        if not await self.store.extend_refresh_record(claims.token_id, renewed.claims.expires_at):
            raise InvalidRefreshTokenError()

        await self.session.commit()
        logger.debug(f"Renewed session {claims.token_id[:12]}... for user {user.id}")
        return user, renewed

    async def logout(self, context: AuthContext, refresh_token: str | None = None) -> None:
        """End the current session.

        The presented access token is blacklisted and the refresh record it
        was issued with is revoked. A refresh token in the body is revoked as
        well when it belongs to the same user.
        """
        if context.is_authenticated and context.token and context.claims:
            await self.store.blacklist_access_token(
                user_id=context.claims.user_id,
                token_hash=hash_access_token(context.token),
                expires_at=context.claims.expires_at,
                reason=BlacklistReason.MANUAL_LOGOUT,
            )
            if context.claims.session_id:
                await self.store.revoke_refresh_record(context.claims.session_id)

        if refresh_token:
            verification = self.codec.verify(refresh_token, TokenType.REFRESH)
            claims = verification.claims
            if claims is None:
                logger.debug("Ignoring invalid refresh token on logout")
            elif context.user is not None and context.user.id != claims.user_id:
                logger.warning(
                    f"User {context.user.id} tried to revoke a refresh token "
                    f"belonging to user {claims.user_id}"
                )
            else:
                await self.store.revoke_refresh_record(claims.token_id)

        await self.session.commit()

    async def _live_session(self, refresh_token: str) -> tuple[TokenClaims, User]:
        """Verify a refresh token against its record and return claims and owner."""
        verification = self.codec.verify(refresh_token, TokenType.REFRESH)
        if not verification.is_valid or verification.claims is None:
            raise InvalidRefreshTokenError()
        claims = verification.claims

        record = await self.store.get_refresh_record(claims.token_id)
        if record is None or record.user_id != claims.user_id:
            logger.warning(f"Refresh token {claims.token_id[:12]}... has no matching record")
            raise InvalidRefreshTokenError()
        if record.is_revoked:
            logger.warning(
                "Replay of revoked refresh token",
                extra={"user_id": str(claims.user_id), "token_id": claims.token_id},
            )
            raise InvalidRefreshTokenError()
        if record.expires_at <= self.codec.clock():
            raise InvalidRefreshTokenError()

        user = await self.users.find_by_id(claims.user_id)
        if user is None:
            raise InvalidRefreshTokenError()
        if not user.is_active:
            raise UserInactiveError()
        return claims, user

    async def _open_session(self, user: User) -> TokenPair:
        refresh = self.codec.issue_refresh(user)
        access = self.codec.issue_access(user, session_id=refresh.claims.token_id)
        await self.store.create_refresh_record(
            user_id=user.id,
            token_id=refresh.claims.token_id,
            expires_at=refresh.claims.expires_at,
            issued_at=refresh.claims.issued_at,
        )
        return TokenPair(
            access_token=access.token,
            refresh_token=refresh.token,
            expires_in=int(self.codec.access_ttl.total_seconds()),
        )
