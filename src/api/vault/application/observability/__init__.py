"""Domain probes for the vault application layer."""

from vault.application.observability.refresh_scheduler_probe import (
    DefaultRefreshSchedulerProbe,
    RefreshSchedulerProbe,
)
from vault.application.observability.token_vault_probe import (
    DefaultTokenVaultProbe,
    TokenVaultProbe,
)

__all__ = [
    "DefaultRefreshSchedulerProbe",
    "DefaultTokenVaultProbe",
    "RefreshSchedulerProbe",
    "TokenVaultProbe",
]
