"""Explicit per-resource permission grants."""

from uuid import UUID

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from taskboard.models.base import BaseModel
from taskboard.models.enums import PermissionLevelType, ResourceTypeType


class Permission(BaseModel):
    """A grant of a permission level on one project, task or comment."""

    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "resource_type", "resource_id", name="uq_permissions_user_resource"
        ),
    )

    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    resource_type: Mapped[str] = mapped_column(ResourceTypeType, nullable=False)
    resource_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False)
    permission: Mapped[str] = mapped_column(PermissionLevelType, nullable=False)

    def __repr__(self) -> str:
        return f"<Permission {self.permission} on {self.resource_type}:{self.resource_id}>"
