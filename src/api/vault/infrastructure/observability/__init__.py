"""Domain probes for the vault infrastructure layer."""

from vault.infrastructure.observability.identity_provider_probe import (
    DefaultIdentityProviderProbe,
    IdentityProviderProbe,
)

__all__ = ["DefaultIdentityProviderProbe", "IdentityProviderProbe"]
