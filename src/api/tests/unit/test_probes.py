"""Unit tests for infrastructure domain probes.

Tests that domain probes correctly capture domain events
following the Domain Oriented Observability pattern.
"""

from dataclasses import FrozenInstanceError
from unittest.mock import MagicMock

import pytest
import structlog

from infrastructure.observability import (
    ConnectionProbe,
    DefaultConnectionProbe,
    DefaultStartupProbe,
    ObservationContext,
    StartupProbe,
)


@pytest.fixture
def mock_logger():
    return MagicMock(spec=structlog.stdlib.BoundLogger)


class TestConnectionProbe:
    """Tests for ConnectionProbe protocol and implementation."""

    def test_default_probe_creates_with_default_logger(self):
        probe = DefaultConnectionProbe()
        assert probe._logger is not None

    def test_engine_created_logs_info(self, mock_logger):
        probe = DefaultConnectionProbe(logger=mock_logger)

        probe.engine_created(role="write", host="localhost", database="warden")

        mock_logger.info.assert_called_once_with(
            "database_engine_created",
            role="write",
            host="localhost",
            database="warden",
        )

    def test_pool_closed_logs_info(self, mock_logger):
        probe = DefaultConnectionProbe(logger=mock_logger)

        probe.pool_closed(role="read")

        mock_logger.info.assert_called_once_with("connection_pool_closed", role="read")


class TestStartupProbe:
    """Tests for StartupProbe."""

    def test_application_starting_logs_version(self, mock_logger):
        DefaultStartupProbe(logger=mock_logger).application_starting("1.2.3")

        mock_logger.info.assert_called_once_with(
            "application_starting", version="1.2.3"
        )

    def test_workers_started(self, mock_logger):
        DefaultStartupProbe(logger=mock_logger).background_workers_started(
            ["audit_logger"]
        )

        mock_logger.info.assert_called_once_with(
            "background_workers_started", workers=["audit_logger"]
        )

    def test_encryption_unavailable_logs_warning(self, mock_logger):
        DefaultStartupProbe(logger=mock_logger).encryption_unavailable("not set")

        mock_logger.warning.assert_called_once_with(
            "encryption_unavailable", error="not set"
        )

    def test_refresh_schedule_unavailable_logs_warning(self, mock_logger):
        DefaultStartupProbe(logger=mock_logger).refresh_schedule_unavailable("down")

        mock_logger.warning.assert_called_once_with(
            "refresh_schedule_unavailable", error="down"
        )


class TestProbeProtocolCompliance:
    """Default probes expose every protocol method."""

    @pytest.mark.parametrize(
        ("protocol", "implementation"),
        [
            (ConnectionProbe, DefaultConnectionProbe),
            (StartupProbe, DefaultStartupProbe),
        ],
    )
    def test_default_probe_matches_protocol(self, protocol, implementation):
        probe = implementation()
        for name, member in vars(protocol).items():
            if callable(member) and not name.startswith("_"):
                assert callable(getattr(probe, name)), name


class TestObservationContext:
    """Tests for ObservationContext."""

    def test_context_creates_with_defaults(self):
        context = ObservationContext()
        assert context.request_id is None
        assert context.owner_id is None
        assert context.workspace_id is None
        assert context.api_key_id is None
        assert context.extra == {}

    def test_as_dict_excludes_none_values(self):
        result = ObservationContext(request_id="req-123").as_dict()
        assert result == {"request_id": "req-123"}

    def test_as_dict_includes_all_set_values(self):
        context = ObservationContext(
            request_id="req-123",
            owner_id="owner-456",
            workspace_id="ws-1",
            api_key_id="01JAAAAAAAAAAAAAAAAAAAAAAA",
            extra={"endpoint": "/access/usage"},
        )

        assert context.as_dict() == {
            "request_id": "req-123",
            "owner_id": "owner-456",
            "workspace_id": "ws-1",
            "api_key_id": "01JAAAAAAAAAAAAAAAAAAAAAAA",
            "endpoint": "/access/usage",
        }

    def test_with_owner_creates_new_context(self):
        original = ObservationContext(request_id="req-123")
        identified = original.with_owner("owner-456", api_key_id="key-1")

        assert identified.owner_id == "owner-456"
        assert identified.api_key_id == "key-1"
        assert identified.request_id == "req-123"
        assert original.owner_id is None

    def test_with_extra_merges(self):
        original = ObservationContext(request_id="req-123", extra={"a": 1})
        new_context = original.with_extra(b=2)

        assert new_context.extra == {"a": 1, "b": 2}
        assert original.extra == {"a": 1}

    def test_context_is_immutable(self):
        context = ObservationContext(request_id="req-123")
        with pytest.raises(FrozenInstanceError):
            context.request_id = "new-id"  # type: ignore[misc]


class TestProbesWithContext:
    """Tests for probes with observation context."""

    def test_connection_probe_with_context_includes_metadata(self, mock_logger):
        context = ObservationContext(request_id="req-123", owner_id="owner-456")
        probe = DefaultConnectionProbe(logger=mock_logger).with_context(context)

        probe.pool_closed(role="write")

        mock_logger.info.assert_called_once_with(
            "connection_pool_closed",
            role="write",
            request_id="req-123",
            owner_id="owner-456",
        )

    def test_with_context_preserves_logger(self, mock_logger):
        probe = DefaultStartupProbe(logger=mock_logger)

        new_probe = probe.with_context(ObservationContext(request_id="req-123"))

        assert new_probe._logger is mock_logger
        assert new_probe is not probe
