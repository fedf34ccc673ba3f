"""Identity provider port."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from vault.domain.value_objects import ExternalIdentity, ProviderTokens


@runtime_checkable
class IdentityProvider(Protocol):
    """OAuth2 identity provider operations used by the vault.

    Every call is bounded by a timeout. Implementations raise
    IdentityProviderTimeoutError on timeout and IdentityProviderError for
    any other failure.
    """

    async def exchange_code(
        self, code: str, redirect_uri: str | None = None
    ) -> ProviderTokens:
        """Exchange an authorization code for tokens."""
        ...

    async def refresh_token(self, refresh_token: str) -> ProviderTokens:
        """Obtain a new access token (and possibly a rotated refresh token)."""
        ...

    async def revoke_token(self, token: str) -> None:
        """Revoke a token at the provider."""
        ...

    async def get_user_info(self, access_token: str) -> ExternalIdentity:
        """Read the profile of the account behind an access token."""
        ...
