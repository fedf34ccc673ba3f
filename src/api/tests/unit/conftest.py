"""Unit test fixtures with mocked dependencies."""

from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def mock_session():
    """Create mock async session with transaction support."""
    session = AsyncMock()
    mock_transaction = MagicMock()
    mock_transaction.__aenter__ = AsyncMock(return_value=None)
    mock_transaction.__aexit__ = AsyncMock(return_value=None)
    session.begin = MagicMock(return_value=mock_transaction)
    return session


@pytest.fixture
def owner_admission():
    """An Admit for owner "owner-123", as require_account_access returns it."""
    from access.application.services import Admit, AuthorizationContext
    from access.domain.value_objects import RateLimitDecision

    context = AuthorizationContext(
        owner_id="owner-123",
        api_key_id="01JAAAAAAAAAAAAAAAAAAAAAAA",
        is_developer=False,
        quota=None,
        rate_limit=RateLimitDecision(
            limited=False, limit=20, remaining=19, reset_time=1_700_000_060.0
        ),
        request_id="req-1",
    )
    return Admit(
        context=context,
        log_request=AsyncMock(return_value=None),
        increment_quota=AsyncMock(return_value=True),
    )
