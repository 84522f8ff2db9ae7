"""Blacklisted access tokens - survives process restarts.

Rows hold the SHA-256 of a revoked access token, or a force-logout sentinel
(``force_logout:<user_id>:<ms>``) whose blacklisted_at invalidates every
access token of that user issued earlier.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from taskboard.models.base import BaseModel, utcnow
from taskboard.models.enums import BlacklistReasonType


class BlacklistedAccessToken(BaseModel):
    """A revoked access token (by hash) or a per-user force-logout marker.

    Entries are created on logout / force logout and deleted by the
    cleanup job once expires_at has passed.
    """

    __tablename__ = "blacklisted_access_tokens"
    __table_args__ = (
        Index("ix_blacklisted_access_tokens_user_reason", "user_id", "reason", "blacklisted_at"),
    )

    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    token_hash: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    reason: Mapped[str] = mapped_column(BlacklistReasonType, nullable=False)
    blacklisted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<BlacklistedAccessToken user={self.user_id} reason={self.reason}>"
