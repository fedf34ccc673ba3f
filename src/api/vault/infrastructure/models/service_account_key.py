"""SQLAlchemy ORM model for the service_account_keys table."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, JSONDocument, TimestampMixin


class ServiceAccountKeyModel(Base, TimestampMixin):
    """ORM model for service_account_keys table (one key per domain)."""

    __tablename__ = "service_account_keys"

    domain: Mapped[str] = mapped_column(String(255), primary_key=True)
    encrypted_key: Mapped[str] = mapped_column(Text, nullable=False)
    client_email: Mapped[str] = mapped_column(String(320), nullable=False)
    admin_owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    admin_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    scopes: Mapped[list] = mapped_column(JSONDocument, nullable=False, default=list)

    def __repr__(self) -> str:
        return (
            f"<ServiceAccountKeyModel(domain={self.domain}, "
            f"client_email={self.client_email})>"
        )
