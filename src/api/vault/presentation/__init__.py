"""Presentation layer for the vault bounded context."""

from vault.presentation.routes import router

__all__ = ["router"]
