"""Application-level value objects for the credentials context."""

from __future__ import annotations

from dataclasses import dataclass

from credentials.domain.value_objects import APIKeyId, Environment, OwnerId


@dataclass(frozen=True)
class CredentialInfo:
    """Identity and capabilities resolved from a valid API key."""

    owner_id: OwnerId
    api_key_id: APIKeyId
    name: str
    environment: Environment
    total_requests: int
    api_enabled: bool
    is_developer: bool


@dataclass(frozen=True)
class KeyAllowance:
    """Result of checking whether an owner may create another key."""

    allowed: bool
    current: int
    max: int
