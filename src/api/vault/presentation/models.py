"""Pydantic request and response models for vault routes."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from vault.domain.value_objects import ExternalIdentity, TokenHealth, TokenHealthStatus

_RECOMMENDATIONS: dict[TokenHealthStatus, str] = {
    TokenHealthStatus.MISSING: "Connect the account to grant access",
    TokenHealthStatus.EXPIRED: "Refresh the token or reconnect the account",
    TokenHealthStatus.EXPIRING_SOON: "The token will be refreshed automatically",
    TokenHealthStatus.HEALTHY: "No action needed",
}


class TokenHealthResponse(BaseModel):
    """Token diagnostics; never includes token material."""

    status: TokenHealthStatus
    message: str
    expires_at: datetime | None = None
    has_refresh_token: bool = False
    minutes_until_expiry: int | None = None
    refresh_count: int = 0
    last_refreshed_at: datetime | None = None
    recommendations: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, health: TokenHealth) -> TokenHealthResponse:
        recommendations = [_RECOMMENDATIONS[health.status]]
        if health.status is not TokenHealthStatus.MISSING and not health.has_refresh_token:
            recommendations.append(
                "Reconnect with offline access so the token can be refreshed"
            )
        return cls(
            status=health.status,
            message=health.message,
            expires_at=health.expires_at,
            has_refresh_token=health.has_refresh_token,
            minutes_until_expiry=health.minutes_until_expiry,
            refresh_count=health.refresh_count,
            last_refreshed_at=health.last_refreshed_at,
            recommendations=recommendations,
        )


class RefreshTokenRequest(BaseModel):
    workspace_id: str | None = Field(default=None, max_length=255)


class RefreshTokenResponse(BaseModel):
    refreshed: bool
    health: TokenHealthResponse


class OAuthCallbackRequest(BaseModel):
    """Authorization code returned by the provider's consent screen."""

    code: str = Field(..., min_length=1, max_length=4096)
    workspace_id: str | None = Field(default=None, max_length=255)
    redirect_uri: str | None = Field(default=None, max_length=2048)


class ConnectedAccountResponse(BaseModel):
    email: str | None = None
    name: str | None = None
    picture: str | None = None
    domain: str | None = None

    @classmethod
    def from_domain(cls, identity: ExternalIdentity) -> ConnectedAccountResponse:
        return cls(
            email=identity.email,
            name=identity.name,
            picture=identity.picture,
            domain=identity.domain,
        )


class CleanupResponse(BaseModel):
    deleted_count: int
    timestamp: datetime
