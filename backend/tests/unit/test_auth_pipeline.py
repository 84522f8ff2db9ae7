"""Unit tests for the per-request authentication pipeline.

The store and user lookups are AsyncMock stand-ins, so each step of the
decision can be exercised without a database.
"""

import uuid
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from taskboard.services.auth_pipeline import (
    AUTH_DECISIONS,
    AuthOutcome,
    AuthPipeline,
    extract_bearer_token,
)
from taskboard.services.errors import StoreError
from taskboard.services.token_codec import TokenCodec

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


def _decisions(outcome: AuthOutcome) -> float:
    return AUTH_DECISIONS.labels(outcome=outcome.value)._value.get()


@pytest.fixture
def codec():
    return TokenCodec(
        access_secret="pipeline-access-secret-" + "x" * 32,
        refresh_secret="pipeline-refresh-secret-" + "y" * 32,
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
        clock=lambda: NOW,
    )


@pytest.fixture
def user():
    return SimpleNamespace(
        id=uuid.uuid4(), email="dev@example.com", role="DEVELOPER", is_active=True
    )


@pytest.fixture
def store():
    store = MagicMock()
    store.is_access_token_blacklisted = AsyncMock(return_value=False)
    store.was_issued_before_force_logout = AsyncMock(return_value=False)
    store.count_active_refresh_tokens = AsyncMock(return_value=1)
    return store


@pytest.fixture
def users(user):
    users = MagicMock()
    users.find_by_id = AsyncMock(return_value=user)
    return users


@pytest.fixture
def pipeline(codec, store, users):
    return AuthPipeline(codec, store, users)


@pytest.fixture
def header(codec, user):
    return f"Bearer {codec.issue_access(user).token}"


class TestExtractBearerToken:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, None),
            ("", None),
            ("Basic abc", None),
            ("Bearer", None),
            ("Bearer abc def", None),
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
        ],
    )
    async def test_extract(self, value, expected):
        assert extract_bearer_token(value) == expected


class TestResolve:
    """Each step of the decision pipeline."""

    async def test_valid_token_authenticates(self, pipeline, header, user):
        before = _decisions(AuthOutcome.AUTHENTICATED)

        context = await pipeline.resolve(header)

        assert context.is_authenticated
        assert context.user is user
        assert context.claims.user_id == user.id
        assert context.token == header.split()[1]
        assert _decisions(AuthOutcome.AUTHENTICATED) == before + 1

    async def test_missing_header_is_anonymous(self, pipeline, store):
        context = await pipeline.resolve(None)

        assert not context.is_authenticated
        assert context.outcome is AuthOutcome.NO_TOKEN
        store.is_access_token_blacklisted.assert_not_called()

    async def test_invalid_token_is_anonymous(self, pipeline, store):
        context = await pipeline.resolve("Bearer not-a-token")

        assert context.outcome is AuthOutcome.INVALID_TOKEN
        store.is_access_token_blacklisted.assert_not_called()

    async def test_expired_token_is_anonymous(self, codec, store, users, user):
        token = codec.issue_access(user).token
        later = TokenCodec(
            access_secret=codec.access_secret,
            refresh_secret=codec.refresh_secret,
            access_ttl=codec.access_ttl,
            refresh_ttl=codec.refresh_ttl,
            clock=lambda: NOW + timedelta(minutes=16),
        )

        context = await AuthPipeline(later, store, users).resolve(f"Bearer {token}")

        assert context.outcome is AuthOutcome.EXPIRED_TOKEN

    async def test_refresh_token_is_not_accepted(self, pipeline, codec, user):
        refresh = codec.issue_refresh(user).token

        context = await pipeline.resolve(f"Bearer {refresh}")

        assert not context.is_authenticated
        assert context.outcome is AuthOutcome.INVALID_TOKEN

    async def test_blacklisted_token_is_anonymous(self, pipeline, header, store, users):
        store.is_access_token_blacklisted.return_value = True

        context = await pipeline.resolve(header)

        assert context.outcome is AuthOutcome.BLACKLISTED
        users.find_by_id.assert_not_called()

    async def test_token_issued_before_force_logout_is_anonymous(
        self, pipeline, header, store, user
    ):
        store.was_issued_before_force_logout.return_value = True

        context = await pipeline.resolve(header)

        assert context.outcome is AuthOutcome.FORCE_LOGGED_OUT
        store.was_issued_before_force_logout.assert_awaited_once_with(user.id, NOW)

    async def test_unknown_user_is_anonymous(self, pipeline, header, users):
        users.find_by_id.return_value = None

        context = await pipeline.resolve(header)

        assert context.outcome is AuthOutcome.UNKNOWN_USER

    async def test_inactive_user_is_anonymous(self, pipeline, header, user):
        user.is_active = False

        context = await pipeline.resolve(header)

        assert context.outcome is AuthOutcome.INACTIVE_USER

    async def test_user_without_active_session_is_anonymous(self, pipeline, header, store):
        store.count_active_refresh_tokens.return_value = 0

        context = await pipeline.resolve(header)

        assert context.outcome is AuthOutcome.NO_ACTIVE_SESSION

    async def test_store_error_fails_closed(self, pipeline, header, store):
        store.is_access_token_blacklisted.side_effect = StoreError()
        before = _decisions(AuthOutcome.STORE_ERROR)

        context = await pipeline.resolve(header)

        assert not context.is_authenticated
        assert context.outcome is AuthOutcome.STORE_ERROR
        assert _decisions(AuthOutcome.STORE_ERROR) == before + 1

    async def test_database_error_in_user_lookup_fails_closed(self, pipeline, header, users):
        users.find_by_id.side_effect = OperationalError("SELECT", {}, Exception("down"))

        context = await pipeline.resolve(header)

        assert context.outcome is AuthOutcome.STORE_ERROR
