"""User lookups used by the authentication layer."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.models.enums import UserRole
from taskboard.models.user import User
from taskboard.services.errors import NotFoundError
from taskboard.services.token_store import store_operation


class UserRepository:
    """User lookups for authentication decisions, plus role changes."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @store_operation
    async def find_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @store_operation
    async def find_by_email(self, email: str) -> User | None:
        """Get user by email (case-insensitive)."""
        result = await self.session.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    @store_operation
    async def update_role(self, user_id: UUID, role: UserRole) -> User:
        """Change a user's role. Tokens already issued keep the old role claim."""
        user = await self.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        user.role = role.value
        await self.session.flush()
        return user
