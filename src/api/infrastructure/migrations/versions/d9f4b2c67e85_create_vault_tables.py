"""create vault tables

Revision ID: d9f4b2c67e85
Revises: c3e8a1b56d74
Create Date: 2026-09-22

oauth_tokens and service_account_keys hold AES-256-GCM envelopes only.
workspace_id uses '' for "no workspace" so the unique constraint holds.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "d9f4b2c67e85"
down_revision: Union[str, Sequence[str], None] = "c3e8a1b56d74"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create oauth_tokens and service_account_keys tables."""
    op.create_table(
        "oauth_tokens",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.String(255), nullable=False, index=True),
        sa.Column("workspace_id", sa.String(255), nullable=False, server_default=""),
        sa.Column("access_token_encrypted", sa.Text, nullable=False),
        sa.Column("refresh_token_encrypted", sa.Text, nullable=True),
        sa.Column(
            "expires_at", sa.DateTime(timezone=True), nullable=False, index=True
        ),
        sa.Column(
            "scopes",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("token_type", sa.String(32), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("picture", sa.Text, nullable=True),
        sa.Column("domain", sa.String(255), nullable=True),
        sa.Column("refresh_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_refreshed_at", sa.DateTime(timezone=True), nullable=True),
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
        sa.UniqueConstraint(
            "owner_id", "workspace_id", name="uq_oauth_tokens_owner_ws"
        ),
    )

    op.create_table(
        "service_account_keys",
        sa.Column("domain", sa.String(255), primary_key=True),
        sa.Column("encrypted_key", sa.Text, nullable=False),
        sa.Column("client_email", sa.String(320), nullable=False),
        sa.Column("admin_owner_id", sa.String(255), nullable=False),
        sa.Column("admin_email", sa.String(320), nullable=True),
        sa.Column(
            "scopes",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
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
    """Drop vault tables."""
    op.drop_table("service_account_keys")
    op.drop_table("oauth_tokens")
