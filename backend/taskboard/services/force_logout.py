"""Administrative force logout: end every session of a user at once."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.services.errors import NotFoundError
from taskboard.services.token_store import TokenStore
from taskboard.services.users import UserRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ForceLogoutService:
    """Revoke all refresh tokens of a user and invalidate their access tokens.

    Both halves are written in one transaction: either the user is fully
    logged out or nothing changed and the StoreError reaches the operator.
    """

    def __init__(
        self,
        session: AsyncSession,
        access_token_ttl: timedelta,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.session = session
        self.access_token_ttl = access_token_ttl
        self.store = TokenStore(session, clock=clock)
        self.users = UserRepository(session)

    async def force_logout_user(self, user_id: UUID) -> int:
        """Log a user out everywhere. Returns the number of sessions revoked.

        Calling it again is harmless: nothing further is revoked and a newer
        marker is recorded.
        """
        # Waits for an in-flight login or refresh of this user to commit, so
        # the bulk revoke below also sees the session it created
        if not await self.store.lock_user_sessions(user_id):
            raise NotFoundError("User not found")
        user = await self.users.find_by_id(user_id)

        revoked = await self.store.blacklist_all_for_user(
            user_id, sentinel_ttl=self.access_token_ttl
        )
        await self.session.commit()

        logger.warning(
            f"Force logout of user {user.email}: {revoked} session(s) revoked",
            extra={"user_id": str(user_id)},
        )
        return revoked
