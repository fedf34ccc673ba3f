"""Dependency injection for the vault bounded context.

The vault, its codec, provider client and scheduler are application
scoped: timers and in-flight refreshes live in these instances.
"""

from functools import lru_cache

from audit.dependencies import get_audit_logger
from infrastructure.database.dependencies import get_write_sessionmaker
from infrastructure.settings import get_crypto_settings, get_vault_settings
from shared_kernel.crypto import InvalidEncryptionKeyError, SecretCodec
from shared_kernel.retry import RetryPolicy
from vault.application import RefreshScheduler, TokenVault
from vault.infrastructure.google_identity_provider import GoogleIdentityProvider
from vault.infrastructure.token_repository import (
    ServiceAccountKeyRepository,
    TokenRepository,
)


@lru_cache
def get_secret_codec() -> SecretCodec:
    """Get the application-scoped codec.

    Raises:
        InvalidEncryptionKeyError: If WARDEN_CRYPTO_ENCRYPTION_KEY is unusable
    """
    try:
        key = get_crypto_settings().key_bytes()
    except ValueError as e:
        raise InvalidEncryptionKeyError(str(e)) from e
    return SecretCodec(key)


@lru_cache
def get_identity_provider() -> GoogleIdentityProvider:
    """Get the application-scoped identity provider client."""
    return GoogleIdentityProvider.from_settings()


@lru_cache
def get_refresh_scheduler() -> RefreshScheduler:
    return RefreshScheduler()


@lru_cache
def get_token_vault() -> TokenVault:
    """Get the application-scoped token vault (singleton).

    Single-flight refresh only holds within one vault instance, so every
    caller in the process must share it.
    """
    settings = get_vault_settings()
    return TokenVault(
        session_factory=get_write_sessionmaker(),
        token_repository_factory=TokenRepository,
        key_repository_factory=ServiceAccountKeyRepository,
        codec=get_secret_codec(),
        provider=get_identity_provider(),
        audit=get_audit_logger(),
        scheduler=get_refresh_scheduler(),
        retry_policy=RetryPolicy(
            max_retries=settings.max_refresh_retries,
            backoff_seconds=settings.retry_backoff_seconds,
        ),
        refresh_buffer_seconds=settings.refresh_buffer_seconds,
        expiring_soon_seconds=settings.expiring_soon_seconds,
        default_token_lifetime_seconds=settings.default_token_lifetime_seconds,
    )
