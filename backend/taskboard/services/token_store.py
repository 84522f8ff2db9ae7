"""Persistence for refresh-token records and the access-token blacklist.

The store flushes but never commits: the calling service owns the
transaction, so multi-step operations (force logout, rotation) land
atomically. Database failures are rolled back and surfaced as StoreError.
"""

import functools
import hashlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import ParamSpec, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.models.blacklisted_access_token import BlacklistedAccessToken
from taskboard.models.enums import BlacklistReason
from taskboard.models.refresh_token import RefreshToken
from taskboard.models.user import User
from taskboard.services.errors import StoreError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

FORCE_LOGOUT_PREFIX = "force_logout"


def hash_access_token(token: str) -> str:
    """SHA-256 hex digest of a raw access token; raw tokens are never stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class UserSessionCount:
    user_id: UUID
    email: str
    active: int


def store_operation(
    func_: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    """Roll back and re-raise database failures as StoreError."""

    @functools.wraps(func_)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        owner = args[0]
        try:
            return await func_(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Store operation {func_.__name__} failed: {e}")
            await owner.session.rollback()  # type: ignore[attr-defined]
            raise StoreError(f"Store operation {func_.__name__} failed") from e

    return wrapper


class TokenStore:
    """Refresh-token and blacklist persistence on top of one AsyncSession."""

    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = _utcnow):
        self.session = session
        self.clock = clock

    # --- Refresh tokens ---

    @store_operation
    async def create_refresh_record(
        self,
        user_id: UUID,
        token_id: str,
        expires_at: datetime,
        issued_at: datetime | None = None,
    ) -> RefreshToken:
        record = RefreshToken(
            user_id=user_id,
            token_id=token_id,
            issued_at=issued_at or self.clock(),
            expires_at=expires_at,
            is_revoked=False,
        )
        self.session.add(record)
        await self.session.flush()
        return record

    @store_operation
    async def get_refresh_record(self, token_id: str) -> RefreshToken | None:
        result = await self.session.execute(
            select(RefreshToken)
            .where(RefreshToken.token_id == token_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @store_operation
    async def revoke_refresh_record(self, token_id: str) -> bool:
        """Revoke a refresh record if it is still unrevoked.

        Returns False when the record is missing or was already revoked, so
        two concurrent rotations of the same token cannot both succeed.
        """
        result = await self.session.execute(
            update(RefreshToken)
            .where(RefreshToken.token_id == token_id, RefreshToken.is_revoked.is_(False))
            .values(is_revoked=True, revoked_at=self.clock())
        )
        return result.rowcount == 1

    @store_operation
    async def extend_refresh_record(self, token_id: str, expires_at: datetime) -> bool:
        """Move the expiry of a live refresh record. False if revoked or already expired."""
        result = await self.session.execute(
            update(RefreshToken)
            .where(
                RefreshToken.token_id == token_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > self.clock(),
            )
            .values(expires_at=expires_at)
        )
        return result.rowcount == 1

    @store_operation
    async def count_active_refresh_tokens(self, user_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count(RefreshToken.id)).where(
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > self.clock(),
            )
        )
        return result.scalar() or 0

    @store_operation
    async def lock_user_sessions(self, user_id: UUID) -> bool:
        """Lock the user row until the transaction ends.

        Serialises count-then-insert sequences for one user. Returns False if
        the user does not exist.
        """
        result = await self.session.execute(
            select(User.id).where(User.id == user_id).with_for_update()
        )
        return result.scalar_one_or_none() is not None

    @store_operation
    async def active_session_counts(self, min_active: int = 1) -> list[UserSessionCount]:
        """Active refresh-token counts per user, highest first."""
        active = func.count(RefreshToken.id)
        result = await self.session.execute(
            select(User.id, User.email, active)
            .join(RefreshToken, RefreshToken.user_id == User.id)
            .where(RefreshToken.is_revoked.is_(False), RefreshToken.expires_at > self.clock())
            .group_by(User.id, User.email)
            .having(active >= min_active)
            .order_by(active.desc(), User.email)
        )
        return [UserSessionCount(user_id=row[0], email=row[1], active=row[2]) for row in result]

    @store_operation
    async def purge_expired_refresh_tokens(self) -> int:
        result = await self.session.execute(
            delete(RefreshToken).where(RefreshToken.expires_at <= self.clock())
        )
        return result.rowcount

    # --- Access-token blacklist ---

    @store_operation
    async def blacklist_access_token(
        self,
        user_id: UUID,
        token_hash: str,
        expires_at: datetime,
        reason: BlacklistReason = BlacklistReason.MANUAL_LOGOUT,
    ) -> BlacklistedAccessToken:
        entry = BlacklistedAccessToken(
            user_id=user_id,
            token_hash=token_hash,
            reason=reason.value,
            blacklisted_at=self.clock(),
            expires_at=expires_at,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    @store_operation
    async def is_access_token_blacklisted(self, token: str) -> bool:
        result = await self.session.execute(
            select(BlacklistedAccessToken.id)
            .where(
                BlacklistedAccessToken.token_hash == hash_access_token(token),
                BlacklistedAccessToken.expires_at > self.clock(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    @store_operation
    async def blacklist_all_for_user(self, user_id: UUID, sentinel_ttl: timedelta) -> int:
        """Revoke every active refresh token and record a force-logout marker.

        The marker's blacklisted_at invalidates all access tokens issued
        before it; it lives for sentinel_ttl, which must be at least the
        access-token lifetime. Returns the number of sessions revoked.
        """
        now = self.clock()
        result = await self.session.execute(
            update(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > now,
            )
            .values(is_revoked=True, revoked_at=now)
        )
        revoked = result.rowcount

        self.session.add(
            BlacklistedAccessToken(
                user_id=user_id,
                token_hash=f"{FORCE_LOGOUT_PREFIX}:{user_id}:{int(now.timestamp() * 1000)}",
                reason=BlacklistReason.FORCE_LOGOUT.value,
                blacklisted_at=now,
                expires_at=now + sentinel_ttl,
            )
        )
        await self.session.flush()
        return revoked

    @store_operation
    async def latest_force_logout_at(self, user_id: UUID) -> datetime | None:
        result = await self.session.execute(
            select(func.max(BlacklistedAccessToken.blacklisted_at)).where(
                BlacklistedAccessToken.user_id == user_id,
                BlacklistedAccessToken.reason == BlacklistReason.FORCE_LOGOUT.value,
                BlacklistedAccessToken.expires_at > self.clock(),
            )
        )
        return result.scalar_one_or_none()

    async def is_force_logged_out(self, user_id: UUID) -> bool:
        """Whether an unexpired force-logout marker exists for the user."""
        return await self.latest_force_logout_at(user_id) is not None

    async def was_issued_before_force_logout(self, user_id: UUID, issued_at: datetime) -> bool:
        latest = await self.latest_force_logout_at(user_id)
        return latest is not None and issued_at < latest

    @store_operation
    async def cleanup_expired(self) -> int:
        """Delete blacklist rows whose expiry has passed. Returns count removed."""
        result = await self.session.execute(
            delete(BlacklistedAccessToken).where(BlacklistedAccessToken.expires_at <= self.clock())
        )
        return result.rowcount
