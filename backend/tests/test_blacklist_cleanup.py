"""Tests for the background blacklist cleanup service."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskboard.models import BlacklistedAccessToken, RefreshToken
from taskboard.services.blacklist_cleanup import BlacklistCleanupService, CleanupResult
from taskboard.services.token_store import TokenStore, hash_access_token


class TestBlacklistCleanupServiceSingleton:
    """Tests for singleton pattern and configuration."""

    def test_get_instance_returns_same_instance(self):
        BlacklistCleanupService._instance = None

        instance1 = BlacklistCleanupService.get_instance()
        instance2 = BlacklistCleanupService.get_instance()

        assert instance1 is instance2

    def test_default_interval_from_settings(self):
        from taskboard.core import settings

        service = BlacklistCleanupService()
        assert service.interval_seconds == settings.blacklist_cleanup_interval_seconds

    def test_custom_interval(self):
        assert BlacklistCleanupService(interval_seconds=60).interval_seconds == 60


class TestBlacklistCleanupServiceLifecycle:
    """Tests for service start/stop lifecycle."""

    @pytest.mark.asyncio
    async def test_start_sets_running_flag(self):
        service = BlacklistCleanupService()

        with patch.object(service, "_cleanup_loop", new_callable=AsyncMock):
            await service.start()

        assert service.is_running is True
        await service.stop()
        assert service.is_running is False

    @pytest.mark.asyncio
    async def test_start_twice_logs_warning(self):
        service = BlacklistCleanupService()

        with patch.object(service, "_cleanup_loop", new_callable=AsyncMock):
            await service.start()

            with patch("taskboard.services.blacklist_cleanup.logger") as mock_logger:
                await service.start()
                mock_logger.warning.assert_called()

        await service.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_task(self):
        service = BlacklistCleanupService()

        async def never_ending():
            await asyncio.sleep(1000)

        real_task = asyncio.create_task(never_ending())
        service._running = True
        BlacklistCleanupService._task = real_task

        await service.stop()

        assert service.is_running is False
        assert real_task.cancelled() or real_task.done()
        assert BlacklistCleanupService._task is None

    @pytest.mark.asyncio
    async def test_cleanup_loop_survives_errors(self):
        service = BlacklistCleanupService()
        service._running = True
        call_count = 0

        async def mock_run_cleanup():
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                raise RuntimeError("database unavailable")
            service._running = False
            return CleanupResult(blacklist_entries=0, refresh_tokens=0)

        with patch.object(service, "_run_cleanup", side_effect=mock_run_cleanup):
            with patch("asyncio.sleep", new_callable=AsyncMock):
                with patch("taskboard.services.blacklist_cleanup.logger") as mock_logger:
                    await service._cleanup_loop()

                    mock_logger.error.assert_called()

        assert call_count == 2


class TestBlacklistCleanupRun:
    """Tests for a single cleanup run."""

    @pytest.mark.asyncio
    async def test_run_cleanup_rolls_back_on_error(self):
        service = BlacklistCleanupService()
        mock_db = MagicMock()
        mock_db.rollback = AsyncMock()
        mock_db.commit = AsyncMock()

        with patch(
            "taskboard.core.database.async_session_maker",
            return_value=AsyncMock(__aenter__=AsyncMock(return_value=mock_db)),
        ):
            with patch.object(
                TokenStore, "cleanup_expired", AsyncMock(side_effect=RuntimeError("boom"))
            ):
                with pytest.raises(RuntimeError):
                    await service.run_cleanup_now()

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_run_cleanup_now_deletes_expired_rows(self, db_engine, db_session, regular_user):
        now = datetime.now(UTC)
        store = TokenStore(db_session)
        for i in range(10):
            await store.blacklist_access_token(
                regular_user.id, hash_access_token(f"old-{i}"), now - timedelta(minutes=1)
            )
        for i in range(5):
            await store.blacklist_access_token(
                regular_user.id, hash_access_token(f"live-{i}"), now + timedelta(minutes=15)
            )
        await store.create_refresh_record(
            regular_user.id, "stale", now - timedelta(minutes=1), issued_at=now - timedelta(days=7)
        )
        await store.create_refresh_record(regular_user.id, "fresh", now + timedelta(days=1))
        await db_session.commit()

        session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
        with patch("taskboard.core.database.async_session_maker", session_maker):
            result = await BlacklistCleanupService().run_cleanup_now()

        assert result == CleanupResult(blacklist_entries=10, refresh_tokens=1)

        async with session_maker() as check:
            remaining_entries = await check.scalar(
                select(func.count(BlacklistedAccessToken.id))
            )
            remaining_tokens = await check.scalar(select(func.count(RefreshToken.id)))
        assert remaining_entries == 5
        assert remaining_tokens == 1
