"""Application services for the credentials bounded context."""

from credentials.application.services.api_key_service import APIKeyService

__all__ = ["APIKeyService"]
