"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI

from access.dependencies import get_rate_limiter_service
from access.presentation import AccessDeniedError, access_denied_handler
from access.presentation import routes as access_routes
from audit.application import AuditLogger
from audit.dependencies import get_audit_logger
from audit.presentation import routes as audit_routes
from credentials.presentation import routes as credential_routes
from infrastructure.database.dependencies import close_database_connections
from infrastructure.database.exceptions import DatabaseError
from infrastructure.logging import configure_logging
from infrastructure.observability import DefaultStartupProbe
from infrastructure.settings import get_settings
from infrastructure.version import __version__
from shared_kernel.crypto import InvalidEncryptionKeyError
from vault.dependencies import (
    get_identity_provider,
    get_refresh_scheduler,
    get_secret_codec,
    get_token_vault,
)
from vault.presentation import routes as vault_routes


@asynccontextmanager
async def warden_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Audit logger flush loop (final flush on shutdown)
    - Rate limiter bucket eviction
    - Token refresh timers, re-armed from stored tokens
    - Identity provider client and database engines
    """
    configure_logging()
    probe = DefaultStartupProbe()
    probe.application_starting(__version__)

    audit_logger = get_audit_logger()
    rate_limiter = get_rate_limiter_service()
    await audit_logger.start()
    await rate_limiter.start()
    workers = ["audit_logger", "rate_limit_eviction"]

    vault_enabled = True
    try:
        get_secret_codec()
    except InvalidEncryptionKeyError as e:
        # API keys keep working; only vault routes fail
        vault_enabled = False
        probe.encryption_unavailable(str(e))

    if vault_enabled:
        try:
            await get_token_vault().resume_refresh_schedule()
            workers.append("token_refresh_scheduler")
        except DatabaseError as e:
            probe.refresh_schedule_unavailable(str(e))

    probe.background_workers_started(workers)

    yield

    if vault_enabled:
        await get_refresh_scheduler().shutdown()
        await get_identity_provider().aclose()
    await rate_limiter.stop()
    await audit_logger.stop()
    await close_database_connections()
    probe.application_stopped()


_settings = get_settings()

app = FastAPI(
    title=_settings.app_name,
    debug=_settings.debug,
    description="Credential custody and access control for API consumers",
    version=__version__,
    lifespan=warden_lifespan,
)

app.add_exception_handler(AccessDeniedError, access_denied_handler)

app.include_router(credential_routes.router)
app.include_router(access_routes.router)
app.include_router(audit_routes.router)
app.include_router(vault_routes.router)


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/health/audit")
def health_audit(
    audit_logger: Annotated[AuditLogger, Depends(get_audit_logger)],
) -> dict:
    """Report whether audit events are still being persisted.

    The logger disables itself after repeated sink failures; this is the
    signal that it has.
    """
    health = audit_logger.health()
    return {
        "status": health.status,
        "enabled": health.enabled,
        "running": health.running,
        "queued": health.queued,
        "consecutive_failures": health.consecutive_failures,
        "dropped": health.dropped,
        "last_error": health.last_error,
    }
