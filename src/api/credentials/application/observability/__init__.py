"""Domain probes for the credentials application layer."""

from credentials.application.observability.api_key_service_probe import (
    APIKeyServiceProbe,
    DefaultAPIKeyServiceProbe,
)

__all__ = ["APIKeyServiceProbe", "DefaultAPIKeyServiceProbe"]
