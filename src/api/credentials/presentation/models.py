"""Pydantic models for API key requests and responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from credentials.application.value_objects import KeyAllowance
from credentials.domain.aggregates import APIKey
from credentials.domain.value_objects import Environment


class CreateAPIKeyRequest(BaseModel):
    """Request model for creating an API key.

    The key is generated server-side and returned only once in the
    creation response.
    """

    name: str = Field(
        ...,
        description="Descriptive name for the API key",
        min_length=1,
        max_length=255,
    )
    environment: Environment = Field(
        Environment.LIVE, description="Key pool: live or test"
    )
    expires_in_days: int | None = Field(
        None,
        description="Days until the key expires; omit for a key that does not expire",
        ge=1,
        le=3650,
    )


class RotateAPIKeyRequest(BaseModel):
    """Request model for replacing a key with a new one."""

    name: str = Field(
        ...,
        description="Name of the replacement key",
        min_length=1,
        max_length=255,
    )


class RevokeAPIKeyRequest(BaseModel):
    reason: str | None = Field(None, max_length=1000)


class APIKeyResponse(BaseModel):
    """Response model for API key (without secret).

    The key itself is NEVER returned after creation.
    """

    id: str = Field(..., description="API Key ID (ULID format)")
    name: str = Field(..., description="API key name")
    prefix: str = Field(..., description="First 12 characters of the key")
    display_suffix: str = Field(..., description="Short form for display, e.g. ...a1b2")
    environment: Environment
    status: str = Field(..., description="active, revoked, expired or inactive")
    created_at: datetime
    expires_at: datetime | None = None
    last_used_at: datetime | None = None
    revoked_at: datetime | None = None
    revoke_reason: str | None = None
    total_requests: int

    @classmethod
    def from_domain(cls, api_key: APIKey) -> APIKeyResponse:
        """Convert domain APIKey aggregate to API response."""
        return cls(
            id=api_key.id.value,
            name=api_key.name,
            prefix=api_key.prefix,
            display_suffix=api_key.display_suffix,
            environment=api_key.environment,
            status=api_key.status().value,
            created_at=api_key.created_at,
            expires_at=api_key.expires_at,
            last_used_at=api_key.last_used_at,
            revoked_at=api_key.revoked_at,
            revoke_reason=api_key.revoke_reason,
            total_requests=api_key.total_requests,
        )


class APIKeyCreatedResponse(APIKeyResponse):
    """Response model for a newly created API key (includes the key).

    Store it securely - it cannot be retrieved again.
    """

    secret: str = Field(
        ...,
        description="The API key. SAVE THIS - it cannot be retrieved again.",
    )


class KeyAllowanceResponse(BaseModel):
    allowed: bool
    current: int
    max: int

    @classmethod
    def from_domain(cls, allowance: KeyAllowance) -> KeyAllowanceResponse:
        return cls(allowed=allowance.allowed, current=allowance.current, max=allowance.max)
