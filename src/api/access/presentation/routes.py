"""HTTP routes for the access bounded context."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from access.application.services import (
    Admit,
    QuotaService,
    UsageService,
    create_rate_limit_headers,
)
from access.dependencies import (
    get_quota_service,
    get_usage_service,
    require_account_access,
)
from access.presentation.models import UsageResponse
from infrastructure.database.exceptions import DatabaseError

router = APIRouter(
    prefix="/access",
    tags=["access"],
)


@router.get("/usage", status_code=status.HTTP_200_OK)
async def get_usage(
    response: Response,
    admission: Annotated[Admit, Depends(require_account_access)],
    quota_service: Annotated[QuotaService, Depends(get_quota_service)],
    usage_service: Annotated[UsageService, Depends(get_usage_service)],
) -> UsageResponse:
    """Current quota, rate limit and 30-day usage of the calling owner.

    Not billable and not gated by quota.

    Raises:
        HTTPException: 503 if usage data cannot be read
    """
    owner_id = admission.context.owner_id
    try:
        quota = await quota_service.get_current_quota(owner_id)
        summary = await usage_service.summarize(owner_id, quota, datetime.now(UTC))
    except DatabaseError:
        await admission.log_request(
            status.HTTP_503_SERVICE_UNAVAILABLE, error_code="USAGE_UNAVAILABLE"
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Usage data is temporarily unavailable",
        )

    response.headers.update(create_rate_limit_headers(admission.context.rate_limit))
    await admission.log_request(status.HTTP_200_OK)
    return UsageResponse.from_summary(summary, admission.context.rate_limit)
