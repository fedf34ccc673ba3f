"""Domain exceptions for the credentials bounded context.

Storage failures are not defined here; repositories raise the shared
StorageUnavailableError so callers can tell denial from degradation.
"""


class APIKeyValidationError(ValueError):
    """Raised when a request to create or rotate a key has invalid input.

    Raised before any storage access.
    """

    pass


class InvalidEnvironmentError(APIKeyValidationError):
    """Raised when an environment is not one of the recognised pools."""

    pass


class APIKeyNotFoundError(Exception):
    """Raised when an API key does not exist or is not owned by the caller."""

    pass


class APIKeyAlreadyRevokedError(Exception):
    """Raised when rotating a key that has already been revoked.

    Revoking a revoked key is a no-op and does not raise this.
    """

    pass


class APIKeyLimitReachedError(Exception):
    """Raised when an owner already holds the maximum number of active keys."""

    def __init__(self, current: int, maximum: int):
        super().__init__(
            f"API key limit reached ({current}/{maximum}). "
            "Revoke an existing key before creating a new one."
        )
        self.current = current
        self.maximum = maximum
