"""Vault domain layer."""

from vault.domain.value_objects import (
    ExternalIdentity,
    OAuthTokenRecord,
    ProviderTokens,
    ServiceAccountKeyRecord,
    StoredToken,
    TokenHealth,
    TokenHealthStatus,
    TokenType,
)

__all__ = [
    "ExternalIdentity",
    "OAuthTokenRecord",
    "ProviderTokens",
    "ServiceAccountKeyRecord",
    "StoredToken",
    "TokenHealth",
    "TokenHealthStatus",
    "TokenType",
]
