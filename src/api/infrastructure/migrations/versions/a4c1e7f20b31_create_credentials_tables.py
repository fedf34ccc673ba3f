"""create credentials tables

Revision ID: a4c1e7f20b31
Revises:
Create Date: 2026-09-14

Creates api_keys (bcrypt hashes only, never plaintext) and api_access
(per-owner API capabilities).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a4c1e7f20b31"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create api_keys and api_access tables."""
    op.create_table(
        "api_keys",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("owner_id", sa.String(255), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("key_hash", sa.String(255), nullable=False, unique=True),
        sa.Column("prefix", sa.String(12), nullable=False),
        sa.Column("environment", sa.String(8), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_by", sa.String(255), nullable=True),
        sa.Column("revoke_reason", sa.Text, nullable=True),
        sa.Column("total_requests", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    # Validation scans candidates by environment among live keys
    op.create_index(
        "ix_api_keys_environment_active_revoked",
        "api_keys",
        ["environment", "is_active", "revoked_at"],
    )

    op.create_table(
        "api_access",
        sa.Column("owner_id", sa.String(255), primary_key=True),
        sa.Column("api_enabled", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_developer", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("max_api_keys", sa.Integer, nullable=False, server_default="3"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    """Drop api_access and api_keys tables."""
    op.drop_table("api_access")
    op.drop_index("ix_api_keys_environment_active_revoked", table_name="api_keys")
    op.drop_table("api_keys")
