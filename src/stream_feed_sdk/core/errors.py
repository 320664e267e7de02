"""Centralized error factory for the Stream Feed SDK.

Provides consistent error creation for every failure observed after a request
has been handed to the transport.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from ..errors import ApiFailure, ConfigurationError, StreamError, TransportError
from ..signing import MISSING_SECRET_MESSAGE

SERVER_SIDE_ONLY_MESSAGE = "This method can only be used server-side using your API Secret"
CLIENT_SIDE_ONLY_MESSAGE = "This method can only be used client-side using a user token"


class ErrorFactory:
    """Centralized error creation with consistent structure."""

    @staticmethod
    def is_success(status_code: int) -> bool:
        """A status is a success when its first digit is 2."""
        return str(status_code).startswith("2")

    @staticmethod
    def from_response(status_code: int, body: Any) -> ApiFailure:
        """Create an API failure from a non-2xx response.

        Args:
            status_code: HTTP status code.
            body: Decoded response body.

        Returns:
            ApiFailure embedding the serialized body and the status code.
        """
        try:
            serialized = json.dumps(body)
        except (TypeError, ValueError):
            serialized = repr(body)
        return ApiFailure(
            f"{serialized} with HTTP status code {status_code}",
            status_code=status_code,
            raw_body=body,
        )

    @staticmethod
    def from_exception(exc: Exception, *, raw_body: Any = None) -> StreamError:
        """Create SDK error from a transport exception.

        Args:
            exc: Exception raised while building or sending the request.
            raw_body: Partial body, if any was read.

        Returns:
            TransportError wrapping ``exc`` (SDK errors are returned unchanged).
        """
        if isinstance(exc, StreamError):
            return exc

        if isinstance(exc, httpx.TimeoutException):
            return TransportError(f"Request timed out: {exc}", cause=exc, raw_body=raw_body)

        if isinstance(exc, httpx.ConnectError):
            return TransportError(f"Connection failed: {exc}", cause=exc, raw_body=raw_body)

        if isinstance(exc, httpx.HTTPError):
            return TransportError(f"HTTP error: {exc}", cause=exc, raw_body=raw_body)

        return TransportError(f"Request could not be sent: {exc}", cause=exc, raw_body=raw_body)

    @staticmethod
    def missing_secret() -> ConfigurationError:
        return ConfigurationError(MISSING_SECRET_MESSAGE, field="api_secret")

    @staticmethod
    def server_side_only() -> ConfigurationError:
        return ConfigurationError(SERVER_SIDE_ONLY_MESSAGE, field="api_secret")

    @staticmethod
    def client_side_only() -> ConfigurationError:
        return ConfigurationError(CLIENT_SIDE_ONLY_MESSAGE, field="user_token")
