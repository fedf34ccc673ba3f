"""Value objects for the vault domain.

Two shapes exist for a token record: StoredToken holds ciphertext as it
sits in the store, OAuthTokenRecord holds decrypted tokens and must not
outlive the operation that needed them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class TokenType(StrEnum):
    """Whose credential a token record holds."""

    USER = "user"
    SERVICE_ACCOUNT = "service_account"


class TokenHealthStatus(StrEnum):
    MISSING = "missing"
    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"
    HEALTHY = "healthy"


@dataclass(frozen=True)
class ExternalIdentity:
    """Profile of the linked account at the identity provider."""

    email: str | None = None
    name: str | None = None
    picture: str | None = None
    domain: str | None = None


@dataclass(frozen=True)
class ProviderTokens:
    """Tokens returned by a code exchange or refresh.

    refresh_token is None when the provider did not rotate it.
    expires_at is None when the provider omitted a lifetime.
    """

    access_token: str = field(repr=False)
    refresh_token: str | None = field(default=None, repr=False)
    expires_at: datetime | None = None
    scopes: tuple[str, ...] = ()


@dataclass(frozen=True)
class StoredToken:
    """A token record as persisted: both tokens are codec JSON envelopes."""

    owner_id: str
    workspace_id: str | None
    access_token_encrypted: str = field(repr=False)
    refresh_token_encrypted: str | None = field(repr=False)
    expires_at: datetime
    scopes: tuple[str, ...] = ()
    identity: ExternalIdentity = field(default_factory=ExternalIdentity)
    token_type: TokenType = TokenType.USER
    refresh_count: int = 0
    last_refreshed_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_refresh_token(self) -> bool:
        return self.refresh_token_encrypted is not None


@dataclass(frozen=True)
class OAuthTokenRecord:
    """A decrypted token record."""

    owner_id: str
    workspace_id: str | None
    access_token: str = field(repr=False)
    refresh_token: str | None = field(repr=False)
    expires_at: datetime
    scopes: tuple[str, ...] = ()
    identity: ExternalIdentity = field(default_factory=ExternalIdentity)
    token_type: TokenType = TokenType.USER
    refresh_count: int = 0
    last_refreshed_at: datetime | None = None

    def needs_refresh(self, now: datetime, buffer_seconds: float) -> bool:
        """True once now + buffer reaches the expiry."""
        return now.timestamp() + buffer_seconds >= self.expires_at.timestamp()


@dataclass(frozen=True)
class TokenHealth:
    """Diagnostic view of a token record. Never contains token material."""

    status: TokenHealthStatus
    message: str
    expires_at: datetime | None = None
    has_refresh_token: bool = False
    minutes_until_expiry: int | None = None
    refresh_count: int = 0
    last_refreshed_at: datetime | None = None


@dataclass(frozen=True)
class ServiceAccountKeyRecord:
    """A domain-wide delegation key as persisted (encrypted)."""

    domain: str
    key_encrypted: str = field(repr=False)
    client_email: str
    admin_owner_id: str
    admin_email: str | None = None
    scopes: tuple[str, ...] = ()
