"""SQLAlchemy ORM model for the api_keys table.

The key_hash is the only sensitive data stored - the plaintext key is
never persisted.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TimestampMixin


class APIKeyModel(Base, TimestampMixin):
    """ORM model for api_keys table.

    Notes:
    - owner_id is VARCHAR(255) to hold external account ids
    - prefix is the first 12 characters of the key and is safe to display
    - revoked rows are kept for audit; only an explicit purge deletes
    - validation scans (environment, is_active, revoked_at)
    """

    __tablename__ = "api_keys"

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    key_hash: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    prefix: Mapped[str] = mapped_column(String(12), nullable=False)
    environment: Mapped[str] = mapped_column(String(8), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    revoked_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    revoke_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_requests: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    __table_args__ = (
        Index(
            "ix_api_keys_environment_active_revoked",
            "environment",
            "is_active",
            "revoked_at",
        ),
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<APIKeyModel(id={self.id}, owner_id={self.owner_id}, "
            f"name={self.name}, prefix={self.prefix})>"
        )
