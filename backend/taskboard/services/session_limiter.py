"""Concurrent session limiting.

A session is an active refresh-token record. When a user already holds
``max_sessions`` of them, new logins are refused; the user has to log out on
another device or be force-logged-out by an administrator. Refresh rotation
replaces one record with another and is never limited.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from taskboard.services.errors import TooManySessionsError
from taskboard.services.token_store import TokenStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUsage:
    user_id: UUID
    email: str
    active: int
    max_allowed: int
    is_at_limit: bool


class SessionLimiter:
    def __init__(self, store: TokenStore, max_sessions: int):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.store = store
        self.max_sessions = max_sessions

    async def is_at_limit(self, user_id: UUID) -> bool:
        return await self.store.count_active_refresh_tokens(user_id) >= self.max_sessions

    async def ensure_capacity(self, user_id: UUID) -> int:
        """Raise TooManySessionsError if another session would exceed the limit.

        Callers that go on to create a session should hold the user lock
        (TokenStore.lock_user_sessions) so the count cannot change underneath.
        Returns the current active count.
        """
        active = await self.store.count_active_refresh_tokens(user_id)
        if active >= self.max_sessions:
            logger.info(f"Session limit reached for user {user_id} ({active}/{self.max_sessions})")
            raise TooManySessionsError(active=active, limit=self.max_sessions)
        return active

    async def list_users_near_limit(self, near_only: bool = False) -> list[SessionUsage]:
        """Per-user session usage for users holding at least one session.

        With near_only, only users within one session of the limit are listed.
        """
        threshold = max(1, self.max_sessions - 1) if near_only else 1
        counts = await self.store.active_session_counts(min_active=threshold)
        return [
            SessionUsage(
                user_id=row.user_id,
                email=row.email,
                active=row.active,
                max_allowed=self.max_sessions,
                is_at_limit=row.active >= self.max_sessions,
            )
            for row in counts
        ]
