"""
Shared test fixtures for Stream Feed SDK tests.

Provides configurations for both credential modes and a recording
``httpx.MockTransport`` for exercising the dispatcher without a network.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import jwt
import pytest

from stream_feed_sdk.config import StreamConfig, TelemetryConfig

API_KEY = "test-api-key"
API_SECRET = "test-api-secret"


class RecordingTransport(httpx.MockTransport):
    """Mock transport remembering every request it handled."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)


@pytest.fixture
def make_transport() -> Callable[..., RecordingTransport]:
    """Provide a factory for recording transports.

    ``make_transport(status, body)`` answers every request with ``body`` as
    JSON; ``make_transport(handler=fn)`` delegates to ``fn``.
    """

    def factory(
        status_code: int = 200,
        body: Any = None,
        *,
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> RecordingTransport:
        if handler is None:
            payload = {} if body is None else body

            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(status_code, json=payload)

        return RecordingTransport(handler)

    return factory


@pytest.fixture
def api_secret() -> str:
    return API_SECRET


@pytest.fixture
def telemetry_config() -> TelemetryConfig:
    """Provide telemetry configuration for testing."""
    return TelemetryConfig(enabled=False, service_name="test-sdk")


@pytest.fixture
def user_token() -> str:
    """Provide a signed user token for user ``u1``."""
    return jwt.encode({"user_id": "u1"}, API_SECRET, algorithm="HS256")


@pytest.fixture
def server_config(telemetry_config: TelemetryConfig) -> StreamConfig:
    """Provide a server-mode configuration."""
    return StreamConfig(
        api_key=API_KEY,
        api_secret=API_SECRET,
        app_id="42",
        telemetry=telemetry_config,
    )


@pytest.fixture
def client_config(user_token: str, telemetry_config: TelemetryConfig) -> StreamConfig:
    """Provide a client-mode configuration."""
    return StreamConfig(
        api_key=API_KEY,
        user_token=user_token,
        app_id="42",
        telemetry=telemetry_config,
    )


@pytest.fixture
def clean_environ() -> dict[str, str]:
    """Provide an empty environment for URL resolution."""
    return {}
