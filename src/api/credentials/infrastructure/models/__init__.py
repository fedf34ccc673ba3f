"""SQLAlchemy models for the credentials bounded context."""

from credentials.infrastructure.models.api_access import APIAccessModel
from credentials.infrastructure.models.api_key import APIKeyModel

__all__ = ["APIAccessModel", "APIKeyModel"]
