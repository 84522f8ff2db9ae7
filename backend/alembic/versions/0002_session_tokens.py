"""Add refresh_tokens and blacklisted_access_tokens tables.

Refresh-token rows are the unit of session counting; blacklist rows hold
hashes of logged-out access tokens and per-user force-logout markers.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18 10:31:07

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: str | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    blacklist_reason = postgresql.ENUM(
        "FORCE_LOGOUT",
        "MANUAL_LOGOUT",
        "SECURITY_BREACH",
        name="blacklist_reason",
        create_type=False,
    )
    blacklist_reason.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("token_id", sa.String(length=128), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_id"),
    )
    op.create_index("ix_refresh_tokens_user_id", "refresh_tokens", ["user_id"])
    op.create_index("ix_refresh_tokens_expires_at", "refresh_tokens", ["expires_at"])
    op.create_index(
        "ix_refresh_tokens_user_active",
        "refresh_tokens",
        ["user_id", "is_revoked", "expires_at"],
    )

    op.create_table(
        "blacklisted_access_tokens",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("token_hash", sa.String(length=128), nullable=False),
        sa.Column("reason", blacklist_reason, nullable=False),
        sa.Column("blacklisted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_blacklisted_access_tokens_token_hash", "blacklisted_access_tokens", ["token_hash"]
    )
    op.create_index(
        "ix_blacklisted_access_tokens_expires_at", "blacklisted_access_tokens", ["expires_at"]
    )
    op.create_index(
        "ix_blacklisted_access_tokens_user_reason",
        "blacklisted_access_tokens",
        ["user_id", "reason", "blacklisted_at"],
    )


def downgrade() -> None:
    op.drop_table("blacklisted_access_tokens")
    op.drop_table("refresh_tokens")
    op.execute("DROP TYPE IF EXISTS blacklist_reason")
