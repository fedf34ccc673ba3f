"""APIKey aggregate for the credentials context."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from credentials.domain.value_objects import (
    APIKeyId,
    APIKeyStatus,
    Environment,
    OwnerId,
)


@dataclass
class APIKey:
    """APIKey aggregate representing a bearer credential.

    Business rules:
    - Only the bcrypt hash and a 12 character prefix are held, never the key
    - Revocation is a soft delete and cannot be undone
    - Revoking an already revoked key changes nothing
    - Expired or inactive keys are invalid
    - Usage is tracked via last_used_at and total_requests
    """

    id: APIKeyId
    owner_id: OwnerId
    name: str
    key_hash: str
    prefix: str
    environment: Environment
    created_at: datetime
    expires_at: datetime | None = None
    last_used_at: datetime | None = None
    is_active: bool = True
    revoked_at: datetime | None = None
    revoked_by: str | None = None
    revoke_reason: str | None = None
    total_requests: int = 0

    @classmethod
    def create(
        cls,
        owner_id: OwnerId,
        name: str,
        key_hash: str,
        prefix: str,
        environment: Environment,
        expires_at: datetime | None = None,
    ) -> APIKey:
        """Factory method for creating a new API key.

        Args:
            owner_id: The account this key authenticates as
            name: A descriptive name for the key
            key_hash: The hashed secret (never store plaintext)
            prefix: Leading characters of the key for display
            environment: Pool the key belongs to
            expires_at: Optional expiration datetime

        Returns:
            A new active APIKey aggregate
        """
        return cls(
            id=APIKeyId.generate(),
            owner_id=owner_id,
            name=name,
            key_hash=key_hash,
            prefix=prefix,
            environment=environment,
            created_at=datetime.now(UTC),
            expires_at=expires_at,
        )

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    @property
    def display_suffix(self) -> str:
        """Last four characters of the prefix, e.g. ``...a1b2``."""
        return f"...{self.prefix[-4:]}"

    def revoke(self, reason: str | None = None, revoked_by: str | None = None) -> bool:
        """Revoke this API key, making it unusable.

        Returns:
            True if the key changed, False if it was already revoked
        """
        if self.is_revoked:
            return False

        self.is_active = False
        self.revoked_at = datetime.now(UTC)
        self.revoked_by = revoked_by
        self.revoke_reason = reason
        return True

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(UTC)) >= self.expires_at

    def is_valid(self, now: datetime | None = None) -> bool:
        """Check if this API key may authenticate a request.

        A key is valid if it is active, not revoked and not expired.
        """
        return self.is_active and not self.is_revoked and not self.is_expired(now)

    def status(self, now: datetime | None = None) -> APIKeyStatus:
        """Derived status, in precedence order revoked, expired, inactive."""
        if self.is_revoked:
            return APIKeyStatus.REVOKED
        if self.is_expired(now):
            return APIKeyStatus.EXPIRED
        if not self.is_active:
            return APIKeyStatus.INACTIVE
        return APIKeyStatus.ACTIVE
