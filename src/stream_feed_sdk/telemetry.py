"""Structured logging and request tracing for the Stream Feed SDK.

Log events never carry credentials: ``redact_credentials`` masks them before
rendering. Spans come from the OpenTelemetry API and are no-ops unless the
application installs an SDK tracer provider.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from . import __version__

if TYPE_CHECKING:
    from collections.abc import Generator, MutableMapping

    from .config import TelemetryConfig

SDK_NAME = "stream-feed-sdk"
REDACTED = "[redacted]"
CREDENTIAL_KEYS = frozenset(
    {"authorization", "signature", "token", "user_token", "api_secret", "secret"}
)

_tracer: trace.Tracer | None = None
_logger: structlog.BoundLogger | None = None


def get_tracer() -> trace.Tracer:
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(SDK_NAME, __version__)
    return _tracer


def get_logger(**context: Any) -> structlog.BoundLogger:
    """Get the SDK logger, bound to ``context`` when given."""
    global _logger
    if _logger is None:
        _logger = structlog.get_logger(SDK_NAME)
    return _logger.bind(**context) if context else _logger


def redact_credentials(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking credential-bearing keys."""
    for key in event_dict:
        if key.lower() in CREDENTIAL_KEYS:
            event_dict[key] = REDACTED
    return event_dict


def configure_telemetry(config: TelemetryConfig) -> None:
    """Configure logging and tracing for the SDK.

    With telemetry disabled the tracer is a no-op and structlog keeps
    whatever configuration the application installed.

    Args:
        config: Telemetry configuration.
    """
    global _tracer, _logger

    if not config.enabled:
        _tracer = trace.NoOpTracer()
        return

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            redact_credentials,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _log_level_to_int(config.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _tracer = trace.get_tracer(config.service_name, __version__)
    _logger = structlog.get_logger(config.service_name)


def _log_level_to_int(level: str) -> int:
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


@contextmanager
def trace_operation(
    name: str,
    *,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Context manager for tracing an operation.

    Args:
        name: Name of the operation.
        attributes: Optional span attributes.

    Yields:
        The active span.
    """
    with get_tracer().start_as_current_span(name, attributes=attributes) as span:
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


@contextmanager
def request_span(method: str, url: str) -> Generator[trace.Span, None, None]:
    """Span around one API request; the URL carries no query string."""
    with trace_operation(
        "stream_request",
        attributes={"http.method": method, "http.url": url},
    ) as span:
        yield span


def record_status(span: trace.Span, status_code: int, error: Exception | None = None) -> None:
    """Attach the response status, and the failure if any, to ``span``."""
    span.set_attribute("http.status_code", status_code)
    if error is not None:
        span.set_status(Status(StatusCode.ERROR, str(error)))
