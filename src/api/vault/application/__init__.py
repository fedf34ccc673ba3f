"""Vault application layer."""

from vault.application.refresh_scheduler import RefreshScheduler
from vault.application.token_vault import TokenVault

__all__ = ["RefreshScheduler", "TokenVault"]
