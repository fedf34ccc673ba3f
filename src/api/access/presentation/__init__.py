"""Access presentation layer."""

from access.presentation.errors import AccessDeniedError, access_denied_handler

__all__ = ["AccessDeniedError", "access_denied_handler"]
