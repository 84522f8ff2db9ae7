"""User model - the subset of the account the auth layer reads and writes."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from taskboard.models.base import BaseModel
from taskboard.models.enums import UserRole, UserRoleType


class User(BaseModel):
    """Application user.

    Profile fields belong to the CRUD layer; authentication only writes
    password_hash on registration, role on admin change and last_login_at
    on login.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        UserRoleType, nullable=False, default=UserRole.DEVELOPER.value
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Tracking
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
