"""Error classes for the Stream Feed SDK.

Every failure surfaced by the SDK is a ``StreamError`` carrying a kind, so
callers can tell "never sent" failures (configuration, validation, schema)
from "sent but rejected" ones (transport, API failure).
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """Failure categories."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    SCHEMA = "schema"
    TRANSPORT = "transport"
    API_FAILURE = "api_failure"


class StreamError(Exception):
    """Base error for the Stream Feed SDK with structured error information."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind | str,
        *,
        status_code: int | None = None,
        raw_body: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = ErrorKind(kind)
        self.status_code = status_code
        self.raw_body = raw_body
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error": self.message,
            "kind": self.kind.value,
            "status_code": self.status_code,
            "raw_body": self.raw_body,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value!r}, message={self.message!r})"


class ConfigurationError(StreamError):
    """Operation needs a credential the client does not hold."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorKind.CONFIGURATION,
            details={"field": field} if field else None,
        )


class ValidationError(StreamError):
    """Argument or identifier failed validation before dispatch."""

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorKind.VALIDATION, details=details)


class SchemaError(StreamError):
    """Malformed target URL (missing host)."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(
            message,
            ErrorKind.SCHEMA,
            details={"url": url} if url is not None else None,
        )


class TransportError(StreamError):
    """Network failure or timeout; always carries the low-level cause."""

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException,
        raw_body: Any = None,
    ) -> None:
        super().__init__(
            message,
            ErrorKind.TRANSPORT,
            raw_body=raw_body,
            details={"cause": repr(cause)},
        )
        self.cause = cause
        self.__cause__ = cause


class ApiFailure(StreamError):
    """Non-2xx HTTP response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        raw_body: Any,
    ) -> None:
        super().__init__(
            message,
            ErrorKind.API_FAILURE,
            status_code=status_code,
            raw_body=raw_body,
        )
