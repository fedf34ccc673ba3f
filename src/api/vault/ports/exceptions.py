"""Exceptions for the vault bounded context."""

from __future__ import annotations


class VaultError(Exception):
    """Base exception for token vault operations."""

    pass


class NoCredentialError(VaultError):
    """Raised when no token record exists for (owner, workspace)."""

    pass


class RefreshUnavailableError(VaultError):
    """Raised when a token needs refreshing but no refresh token is stored.

    The owner must re-authenticate with the identity provider.
    """

    pass


class RefreshFailedError(VaultError):
    """Raised when every refresh attempt failed.

    Treat as "re-authentication required", not as a transient error.
    """

    pass


class ServiceAccountKeyValidationError(VaultError, ValueError):
    """Raised when a service account key is not a usable key document."""

    pass


class IdentityProviderError(Exception):
    """Raised when a call to the identity provider fails.

    Attributes:
        status_code: HTTP status returned by the provider, if any
        retryable: Whether repeating the same call may succeed
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = True,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class IdentityProviderTimeoutError(IdentityProviderError):
    """Raised when the identity provider does not answer within the timeout."""

    def __init__(self, message: str):
        super().__init__(message, status_code=None, retryable=True)
