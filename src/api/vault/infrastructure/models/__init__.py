"""SQLAlchemy ORM models for the vault bounded context."""

from vault.infrastructure.models.oauth_token import OAuthTokenModel
from vault.infrastructure.models.service_account_key import ServiceAccountKeyModel

__all__ = ["OAuthTokenModel", "ServiceAccountKeyModel"]
