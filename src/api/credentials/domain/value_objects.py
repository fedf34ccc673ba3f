"""Value objects for the credentials domain."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from ulid import ULID


class Environment(StrEnum):
    """Key pool a credential belongs to; encoded in the plaintext key."""

    LIVE = "live"
    TEST = "test"


class APIKeyStatus(StrEnum):
    """Derived display status of an API key."""

    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class APIKeyId:
    """Identifier for an APIKey aggregate.

    Uses ULID for sortability and distribution-friendly generation.
    """

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def generate(cls) -> APIKeyId:
        """Generate a new APIKeyId using ULID."""
        return cls(value=str(ULID()))

    @classmethod
    def from_string(cls, value: str) -> APIKeyId:
        """Create APIKeyId from string value.

        Raises:
            ValueError: If value is not a valid ULID
        """
        try:
            ULID.from_str(value)
        except ValueError as e:
            raise ValueError(f"Invalid APIKeyId: {value}") from e

        return cls(value=value)


@dataclass(frozen=True)
class OwnerId:
    """Identifier of the account that owns credentials.

    Owner ids come from the external account system, so any non-blank
    string is accepted.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValueError("OwnerId cannot be blank")
        if len(self.value) > 255:
            raise ValueError("OwnerId cannot exceed 255 characters")

    def __str__(self) -> str:
        """Return string representation."""
        return self.value


@dataclass(frozen=True)
class AccessPolicy:
    """API capabilities granted to an owner by their plan.

    Owners without a stored policy get ``AccessPolicy.default()``: API
    access disabled and the default key allowance.
    """

    owner_id: OwnerId
    api_enabled: bool
    is_developer: bool
    max_api_keys: int

    @classmethod
    def default(cls, owner_id: OwnerId, max_api_keys: int = 3) -> AccessPolicy:
        return cls(
            owner_id=owner_id,
            api_enabled=False,
            is_developer=False,
            max_api_keys=max_api_keys,
        )

    @property
    def can_call_api(self) -> bool:
        return self.api_enabled or self.is_developer
