"""Rendering of admission denials as HTTP responses."""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from access.application.services import Deny


class AccessDeniedError(Exception):
    """Raised by the require_api_key dependency when a request is refused."""

    def __init__(self, deny: Deny):
        super().__init__(deny.message)
        self.deny = deny


async def access_denied_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a Deny as ``{"error", "message", "code", ...}`` with its headers."""
    assert isinstance(exc, AccessDeniedError)
    deny = exc.deny
    return JSONResponse(
        status_code=deny.status_code,
        content=deny.to_body(),
        headers=deny.headers,
    )
