"""Blacklist cleanup service - periodically removes expired token state."""

import asyncio
import threading
from dataclasses import dataclass
from typing import Optional

from taskboard.core import get_logger, session_scope, settings
from taskboard.services.token_store import TokenStore

logger = get_logger("blacklist_cleanup")

# Delay before the first run so startup is not slowed by a large purge
STARTUP_DELAY_SECONDS = 30


@dataclass(frozen=True)
class CleanupResult:
    blacklist_entries: int
    refresh_tokens: int


class BlacklistCleanupService:
    """Background service deleting expired blacklist rows and refresh records."""

    _instance: Optional["BlacklistCleanupService"] = None
    _instance_lock: threading.Lock = threading.Lock()
    _task: asyncio.Task | None = None

    def __init__(self, interval_seconds: int | None = None):
        self._running = False
        self._interval_seconds = interval_seconds or settings.blacklist_cleanup_interval_seconds

    @classmethod
    def get_instance(cls) -> "BlacklistCleanupService":
        """Get singleton instance of the cleanup service (thread-safe)."""
        if cls._instance is None:
            with cls._instance_lock:
                # Double-check locking pattern
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @property
    def interval_seconds(self) -> int:
        return self._interval_seconds

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """Start the background cleanup task."""
        if self._running:
            logger.warning("Blacklist cleanup service is already running")
            return

        self._running = True
        BlacklistCleanupService._task = asyncio.create_task(self._cleanup_loop())
        logger.info(f"Blacklist cleanup service started (interval: {self._interval_seconds}s)")

    async def stop(self):
        """Stop the background cleanup task."""
        self._running = False
        if BlacklistCleanupService._task:
            BlacklistCleanupService._task.cancel()
            try:
                await BlacklistCleanupService._task
            except asyncio.CancelledError:
                pass
            BlacklistCleanupService._task = None
        logger.info("Blacklist cleanup service stopped")

    async def _cleanup_loop(self):
        """Main loop; a failed run is logged and retried on the next tick."""
        await asyncio.sleep(STARTUP_DELAY_SECONDS)

        while self._running:
            try:
                await self._run_cleanup()
            except Exception as e:
                logger.error(f"Error in blacklist cleanup: {e}")

            await asyncio.sleep(self._interval_seconds)

    async def _run_cleanup(self) -> CleanupResult:
        """Execute a single cleanup run in its own transaction."""
        try:
            async with session_scope() as db:
                store = TokenStore(db)
                removed_entries = await store.cleanup_expired()
                removed_tokens = await store.purge_expired_refresh_tokens()
        except Exception as e:
            logger.exception(f"Error during blacklist cleanup: {e}")
            raise

        if removed_entries or removed_tokens:
            logger.info(
                f"Blacklist cleanup: removed {removed_entries} expired blacklist entries "
                f"and {removed_tokens} expired refresh tokens"
            )
        return CleanupResult(blacklist_entries=removed_entries, refresh_tokens=removed_tokens)

    async def run_cleanup_now(self) -> CleanupResult:
        """Manually trigger a cleanup run."""
        return await self._run_cleanup()
