"""Credentials presentation layer."""

from credentials.presentation.routes import router

__all__ = ["router"]
