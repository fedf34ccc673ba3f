"""Dependency injection for the credentials bounded context."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from audit.application import AuditLogger
from audit.dependencies import get_audit_logger
from credentials.application.observability import (
    APIKeyServiceProbe,
    DefaultAPIKeyServiceProbe,
)
from credentials.application.services import APIKeyService
from credentials.infrastructure.access_policy_repository import (
    AccessPolicyRepository,
)
from credentials.infrastructure.api_key_repository import APIKeyRepository
from infrastructure.database.dependencies import get_write_session
from infrastructure.settings import get_credential_settings


def get_api_key_service_probe() -> APIKeyServiceProbe:
    """Get APIKeyServiceProbe instance.

    Returns:
        DefaultAPIKeyServiceProbe instance for observability
    """
    return DefaultAPIKeyServiceProbe()


def get_api_key_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> APIKeyRepository:
    """Get APIKeyRepository instance.

    Args:
        session: Async database session

    Returns:
        APIKeyRepository instance
    """
    return APIKeyRepository(session=session)


def get_access_policy_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> AccessPolicyRepository:
    """Get AccessPolicyRepository instance."""
    return AccessPolicyRepository(session=session)


def get_api_key_service(
    api_key_repo: Annotated[APIKeyRepository, Depends(get_api_key_repository)],
    policy_repo: Annotated[
        AccessPolicyRepository, Depends(get_access_policy_repository)
    ],
    session: Annotated[AsyncSession, Depends(get_write_session)],
    probe: Annotated[APIKeyServiceProbe, Depends(get_api_key_service_probe)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
) -> APIKeyService:
    """Get APIKeyService instance.

    Args:
        api_key_repo: API key repository (shares session via FastAPI dependency caching)
        policy_repo: Access policy repository on the same session
        session: Database session for transaction management
        probe: API key service probe for observability
        audit: Process-wide audit logger

    Returns:
        APIKeyService instance
    """
    settings = get_credential_settings()
    return APIKeyService(
        session=session,
        api_key_repository=api_key_repo,
        access_policy_repository=policy_repo,
        probe=probe,
        audit=audit,
        key_prefix=settings.key_prefix,
        bcrypt_rounds=settings.bcrypt_rounds,
        default_max_api_keys=settings.default_max_api_keys,
    )
