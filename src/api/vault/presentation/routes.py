"""HTTP routes for the token vault.

Token material never appears in a response. Owner routes authenticate
with an API key; the cleanup route is for a scheduler and uses a shared
bearer secret.
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, status

from access.application.services import Admit
from access.dependencies import require_account_access
from infrastructure.database.exceptions import StorageUnavailableError
from infrastructure.settings import VaultSettings, get_vault_settings
from shared_kernel.crypto import TamperedOrCorruptCiphertextError
from vault.application import TokenVault
from vault.dependencies import get_token_vault
from vault.ports.exceptions import (
    IdentityProviderError,
    IdentityProviderTimeoutError,
    NoCredentialError,
    RefreshFailedError,
    RefreshUnavailableError,
)
from vault.presentation.models import (
    CleanupResponse,
    ConnectedAccountResponse,
    OAuthCallbackRequest,
    RefreshTokenRequest,
    RefreshTokenResponse,
    TokenHealthResponse,
)

router = APIRouter(prefix="/vault", tags=["vault"])


def _storage_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Token store is temporarily unavailable",
    )


@router.get("/tokens/health")
async def get_token_health(
    admission: Annotated[Admit, Depends(require_account_access)],
    vault: Annotated[TokenVault, Depends(get_token_vault)],
    workspace_id: Annotated[str | None, Query(max_length=255)] = None,
) -> TokenHealthResponse:
    """Report the state of the caller's OAuth token."""
    try:
        health = await vault.check_health(admission.context.owner_id, workspace_id)
    except StorageUnavailableError:
        raise _storage_unavailable()
    return TokenHealthResponse.from_domain(health)


@router.post("/tokens/refresh")
async def refresh_token(
    admission: Annotated[Admit, Depends(require_account_access)],
    vault: Annotated[TokenVault, Depends(get_token_vault)],
    request: Annotated[RefreshTokenRequest | None, Body()] = None,
) -> RefreshTokenResponse:
    """Force a refresh of the caller's OAuth token.

    Raises:
        HTTPException: 404 if no token is stored
        HTTPException: 409 if the account must be reconnected
        HTTPException: 500 if the stored token failed authentication
        HTTPException: 503 if the token store is unavailable
    """
    owner_id = admission.context.owner_id
    workspace_id = request.workspace_id if request else None
    try:
        await vault.get_valid_access_token(owner_id, workspace_id, force_refresh=True)
        health = await vault.check_health(owner_id, workspace_id)
    except NoCredentialError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No token stored for this account",
        )
    except (RefreshUnavailableError, RefreshFailedError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except TamperedOrCorruptCiphertextError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Stored token could not be read; reconnect the account",
        )
    except StorageUnavailableError:
        raise _storage_unavailable()

    return RefreshTokenResponse(
        refreshed=True, health=TokenHealthResponse.from_domain(health)
    )


@router.delete("/tokens", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_token(
    admission: Annotated[Admit, Depends(require_account_access)],
    vault: Annotated[TokenVault, Depends(get_token_vault)],
    workspace_id: Annotated[str | None, Query(max_length=255)] = None,
) -> None:
    """Disconnect the caller's account and delete the stored token.

    Raises:
        HTTPException: 404 if no token is stored
        HTTPException: 503 if the token store is unavailable
    """
    try:
        deleted = await vault.revoke(admission.context.owner_id, workspace_id)
    except StorageUnavailableError:
        raise _storage_unavailable()
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No token stored for this account",
        )


@router.post("/oauth/callback", status_code=status.HTTP_201_CREATED)
async def oauth_callback(
    request: OAuthCallbackRequest,
    admission: Annotated[Admit, Depends(require_account_access)],
    vault: Annotated[TokenVault, Depends(get_token_vault)],
) -> ConnectedAccountResponse:
    """Exchange an authorization code and store the caller's tokens.

    Raises:
        HTTPException: 502 if the identity provider rejected the exchange
        HTTPException: 503 if the token store is unavailable
        HTTPException: 504 if the identity provider timed out
    """
    try:
        identity = await vault.connect(
            owner_id=admission.context.owner_id,
            code=request.code,
            workspace_id=request.workspace_id,
            redirect_uri=request.redirect_uri,
        )
    except IdentityProviderTimeoutError:
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Identity provider did not respond in time",
        )
    except IdentityProviderError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Identity provider rejected the authorization code",
        )
    except StorageUnavailableError:
        raise _storage_unavailable()
    return ConnectedAccountResponse.from_domain(identity)


@router.post("/tokens/cleanup")
async def cleanup_expired_tokens(
    vault: Annotated[TokenVault, Depends(get_token_vault)],
    settings: Annotated[VaultSettings, Depends(get_vault_settings)],
    authorization: Annotated[str | None, Header()] = None,
) -> CleanupResponse:
    """Delete expired tokens that cannot be refreshed.

    Raises:
        HTTPException: 401 if the bearer secret is missing or wrong
        HTTPException: 503 if the token store is unavailable
    """
    expected = settings.cleanup_secret.get_secret_value()
    presented = (authorization or "").removeprefix("Bearer ").strip()
    if not expected or not secrets.compare_digest(
        presented.encode("utf-8"), expected.encode("utf-8")
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    try:
        deleted = await vault.cleanup_expired_tokens()
    except StorageUnavailableError:
        raise _storage_unavailable()
    return CleanupResponse(deleted_count=deleted, timestamp=datetime.now(UTC))
