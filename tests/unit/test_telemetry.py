"""Unit tests for logging and tracing helpers."""

from __future__ import annotations

import asyncio
import logging

import pytest
import structlog
from opentelemetry import trace

from stream_feed_sdk import StreamClient, configure_telemetry as exported_configure
from stream_feed_sdk.config import TelemetryConfig
from stream_feed_sdk.telemetry import (
    REDACTED,
    _log_level_to_int,
    configure_telemetry,
    get_tracer,
    redact_credentials,
    request_span,
    trace_operation,
)


class TestRedaction:
    """Tests for the credential-masking processor."""

    def test_masks_credentials(self) -> None:
        event = {
            "event": "Request completed",
            "Authorization": "eyJ...",
            "signature": "user1 eyJ...",
            "api_secret": "s3cr3t",
            "url": "https://api.stream-io-api.com/api/v1.0/og/",
        }

        result = redact_credentials(None, "info", event)

        assert result["Authorization"] == REDACTED
        assert result["signature"] == REDACTED
        assert result["api_secret"] == REDACTED
        assert result["url"] == "https://api.stream-io-api.com/api/v1.0/og/"
        assert result["event"] == "Request completed"


class TestLogLevels:
    """Tests for log level parsing."""

    @pytest.mark.parametrize(
        ("name", "level"),
        [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("bogus", logging.INFO)],
    )
    def test_levels(self, name: str, level: int) -> None:
        assert _log_level_to_int(name) == level


class TestTracing:
    """Tests for span helpers."""

    def test_disabled_telemetry_uses_noop_tracer(self) -> None:
        configure_telemetry(TelemetryConfig(enabled=False))

        assert isinstance(get_tracer(), trace.NoOpTracer)

    def test_request_span(self) -> None:
        configure_telemetry(TelemetryConfig(enabled=False))

        with request_span("GET", "https://example.com/") as span:
            assert span is not None

    def test_trace_operation_reraises(self) -> None:
        configure_telemetry(TelemetryConfig(enabled=False))

        with pytest.raises(RuntimeError, match="boom"):
            with trace_operation("failing"):
                raise RuntimeError("boom")


class TestOptIn:
    """Tests that clients leave logging configuration to the application."""

    def test_client_does_not_configure_structlog(
        self, server_config, make_transport, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls = []
        monkeypatch.setattr(structlog, "configure", lambda **kwargs: calls.append(kwargs))
        config = server_config.model_copy(update={"telemetry": TelemetryConfig()})

        client = StreamClient(config, transport=make_transport(), environ={})
        asyncio.run(client.close())

        assert calls == []

    def test_configure_telemetry_is_explicit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = []
        monkeypatch.setattr(structlog, "configure", lambda **kwargs: calls.append(kwargs))

        exported_configure(TelemetryConfig(log_level="DEBUG"))

        assert len(calls) == 1
        assert redact_credentials in calls[0]["processors"]
