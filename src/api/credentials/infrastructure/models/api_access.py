"""SQLAlchemy ORM model for the api_access table.

One row per owner holding the API capabilities granted by their plan.
"""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TimestampMixin


class APIAccessModel(Base, TimestampMixin):
    """ORM model for api_access table."""

    __tablename__ = "api_access"

    owner_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    api_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_developer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    max_api_keys: Mapped[int] = mapped_column(Integer, default=3, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<APIAccessModel(owner_id={self.owner_id}, "
            f"api_enabled={self.api_enabled}, max_api_keys={self.max_api_keys})>"
        )
