"""SQLAlchemy ORM model for the oauth_tokens table."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, JSONDocument, TimestampMixin

# Stored in place of NULL so (owner_id, workspace_id) stays unique
NO_WORKSPACE = ""


class OAuthTokenModel(Base, TimestampMixin):
    """ORM model for oauth_tokens table.

    Token columns hold codec JSON envelopes, never plaintext.
    """

    __tablename__ = "oauth_tokens"
    __table_args__ = (
        UniqueConstraint("owner_id", "workspace_id", name="uq_oauth_tokens_owner_ws"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    workspace_id: Mapped[str] = mapped_column(
        String(255), nullable=False, default=NO_WORKSPACE
    )
    access_token_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    scopes: Mapped[list] = mapped_column(JSONDocument, nullable=False, default=list)
    token_type: Mapped[str] = mapped_column(String(32), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    picture: Mapped[str | None] = mapped_column(Text, nullable=True)
    domain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    refresh_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_refreshed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<OAuthTokenModel(owner_id={self.owner_id}, "
            f"workspace_id={self.workspace_id!r}, expires_at={self.expires_at})>"
        )
