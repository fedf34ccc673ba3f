"""create quota and usage tables

Revision ID: b7d2f9034c52
Revises: a4c1e7f20b31
Create Date: 2026-09-16

quota_windows holds one monthly usage window per owner and is only
changed by conditional UPDATE statements. quota_usage_receipts makes
increments idempotent per request id. api_usage is an append-only
request log.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "b7d2f9034c52"
down_revision: Union[str, Sequence[str], None] = "a4c1e7f20b31"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create quota_windows, quota_usage_receipts and api_usage tables."""
    op.create_table(
        "quota_windows",
        sa.Column("owner_id", sa.String(255), primary_key=True),
        sa.Column("plan_tier", sa.String(32), nullable=False),
        sa.Column("monthly_limit", sa.Integer, nullable=False),
        sa.Column("current_usage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "overage_allowed", sa.Boolean, nullable=False, server_default="false"
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
        sa.CheckConstraint("current_usage >= 0", name="ck_quota_windows_usage"),
    )

    op.create_table(
        "quota_usage_receipts",
        sa.Column("request_id", sa.String(64), primary_key=True),
        sa.Column("owner_id", sa.String(255), nullable=False, index=True),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "api_usage",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("api_key_id", sa.String(26), nullable=False),
        sa.Column("owner_id", sa.String(255), nullable=False),
        sa.Column("request_id", sa.String(64), nullable=False),
        sa.Column("endpoint", sa.String(512), nullable=False),
        sa.Column("method", sa.String(16), nullable=False),
        sa.Column("status_code", sa.Integer, nullable=False),
        sa.Column("response_time_ms", sa.Integer, nullable=False),
        sa.Column("billable", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("error_code", sa.String(64), nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column(
            "extra",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_index(
        "ix_api_usage_owner_created",
        "api_usage",
        ["owner_id", "created_at"],
    )


def downgrade() -> None:
    """Drop quota and usage tables."""
    op.drop_index("ix_api_usage_owner_created", table_name="api_usage")
    op.drop_table("api_usage")
    op.drop_table("quota_usage_receipts")
    op.drop_table("quota_windows")
