"""HTTP routes for API key management.

Callers authenticate with one of their existing keys. These endpoints are
neither metered nor gated by quota.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, status

from access.application.services import Admit
from access.dependencies import require_account_access
from credentials.application.services import APIKeyService
from credentials.dependencies import get_api_key_service
from credentials.domain.value_objects import APIKeyId, OwnerId
from credentials.ports.exceptions import (
    APIKeyAlreadyRevokedError,
    APIKeyLimitReachedError,
    APIKeyNotFoundError,
    APIKeyValidationError,
)
from credentials.presentation.models import (
    APIKeyCreatedResponse,
    APIKeyResponse,
    CreateAPIKeyRequest,
    KeyAllowanceResponse,
    RevokeAPIKeyRequest,
    RotateAPIKeyRequest,
)
from infrastructure.database.exceptions import StorageUnavailableError

router = APIRouter(
    prefix="/credentials/api-keys",
    tags=["api-keys"],
)


def _parse_api_key_id(api_key_id: str) -> APIKeyId:
    try:
        return APIKeyId.from_string(api_key_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="Invalid API key ID format",
        )


def _storage_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Credential store is temporarily unavailable",
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_api_key(
    request: CreateAPIKeyRequest,
    admission: Annotated[Admit, Depends(require_account_access)],
    service: Annotated[APIKeyService, Depends(get_api_key_service)],
) -> APIKeyCreatedResponse:
    """Create a new API key for the calling owner.

    The plaintext key is returned ONLY in this response.

    Raises:
        HTTPException: 403 if the owner already holds the maximum number of keys
        HTTPException: 422 if the request is invalid
        HTTPException: 503 if the credential store is unavailable
    """
    expires_at = None
    if request.expires_in_days is not None:
        expires_at = datetime.now(UTC) + timedelta(days=request.expires_in_days)

    try:
        api_key, plaintext = await service.create(
            owner_id=OwnerId(admission.context.owner_id),
            name=request.name,
            environment=request.environment,
            expires_at=expires_at,
        )
    except APIKeyLimitReachedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except APIKeyValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(e)
        )
    except StorageUnavailableError:
        raise _storage_unavailable()

    return APIKeyCreatedResponse(
        secret=plaintext,
        **APIKeyResponse.from_domain(api_key).model_dump(),
    )


@router.get("", status_code=status.HTTP_200_OK)
async def list_api_keys(
    admission: Annotated[Admit, Depends(require_account_access)],
    service: Annotated[APIKeyService, Depends(get_api_key_service)],
) -> list[APIKeyResponse]:
    """List all keys of the calling owner, including revoked and expired ones."""
    try:
        api_keys = await service.list_keys(OwnerId(admission.context.owner_id))
    except StorageUnavailableError:
        raise _storage_unavailable()
    return [APIKeyResponse.from_domain(key) for key in api_keys]


@router.get("/allowance", status_code=status.HTTP_200_OK)
async def get_key_allowance(
    admission: Annotated[Admit, Depends(require_account_access)],
    service: Annotated[APIKeyService, Depends(get_api_key_service)],
) -> KeyAllowanceResponse:
    """Whether the calling owner may create another key."""
    try:
        allowance = await service.can_create(OwnerId(admission.context.owner_id))
    except StorageUnavailableError:
        raise _storage_unavailable()
    return KeyAllowanceResponse.from_domain(allowance)


@router.post("/{api_key_id}/rotate", status_code=status.HTTP_201_CREATED)
async def rotate_api_key(
    api_key_id: str,
    request: RotateAPIKeyRequest,
    admission: Annotated[Admit, Depends(require_account_access)],
    service: Annotated[APIKeyService, Depends(get_api_key_service)],
) -> APIKeyCreatedResponse:
    """Replace a key with a new one of the same environment.

    Raises:
        HTTPException: 404 if the key does not exist or is not owned
        HTTPException: 409 if the key is already revoked
    """
    old_id = _parse_api_key_id(api_key_id)
    try:
        api_key, plaintext = await service.rotate(
            old_api_key_id=old_id,
            owner_id=OwnerId(admission.context.owner_id),
            new_name=request.name,
        )
    except APIKeyNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="API key not found"
        )
    except APIKeyAlreadyRevokedError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="API key is already revoked",
        )
    except APIKeyValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(e)
        )
    except StorageUnavailableError:
        raise _storage_unavailable()

    return APIKeyCreatedResponse(
        secret=plaintext,
        **APIKeyResponse.from_domain(api_key).model_dump(),
    )


@router.delete("/{api_key_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_api_key(
    api_key_id: str,
    admission: Annotated[Admit, Depends(require_account_access)],
    service: Annotated[APIKeyService, Depends(get_api_key_service)],
    request: Annotated[RevokeAPIKeyRequest | None, Body()] = None,
) -> None:
    """Revoke an API key. Revoking an already revoked key succeeds.

    Raises:
        HTTPException: 404 if the key does not exist or is not owned
    """
    key_id = _parse_api_key_id(api_key_id)
    try:
        await service.revoke(
            api_key_id=key_id,
            owner_id=OwnerId(admission.context.owner_id),
            reason=request.reason if request else None,
        )
    except APIKeyNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="API key not found"
        )
    except StorageUnavailableError:
        raise _storage_unavailable()


@router.delete("/{api_key_id}/purge", status_code=status.HTTP_204_NO_CONTENT)
async def purge_api_key(
    api_key_id: str,
    admission: Annotated[Admit, Depends(require_account_access)],
    service: Annotated[APIKeyService, Depends(get_api_key_service)],
) -> None:
    """Permanently delete an API key and its metadata.

    Raises:
        HTTPException: 404 if the key does not exist or is not owned
    """
    key_id = _parse_api_key_id(api_key_id)
    try:
        await service.purge(key_id, OwnerId(admission.context.owner_id))
    except APIKeyNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="API key not found"
        )
    except StorageUnavailableError:
        raise _storage_unavailable()
