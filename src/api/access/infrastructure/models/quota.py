"""SQLAlchemy ORM models for quota windows and usage receipts."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TimestampMixin, utc_now


class QuotaWindowModel(Base, TimestampMixin):
    """ORM model for quota_windows table.

    One row per owner. monthly_limit -1 means unlimited. current_usage is
    only changed by conditional UPDATE statements.
    """

    __tablename__ = "quota_windows"

    owner_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    plan_tier: Mapped[str] = mapped_column(String(32), nullable=False)
    monthly_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    current_usage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    period_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    overage_allowed: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<QuotaWindowModel(owner_id={self.owner_id}, plan_tier={self.plan_tier}, "
            f"usage={self.current_usage}/{self.monthly_limit})>"
        )


class QuotaUsageReceiptModel(Base):
    """ORM model for quota_usage_receipts table.

    A row per counted request_id makes increments idempotent. Receipts
    are not tied to a window row so a missing window can be detected after
    the receipt insert and rolled back.
    """

    __tablename__ = "quota_usage_receipts"

    request_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), insert_default=utc_now, nullable=False
    )
