"""Stream Feed Python SDK.

The SDK logs through structlog and traces through the OpenTelemetry API but
never configures either on its own. Call ``configure_telemetry(config.telemetry)``
once at startup to install its JSON logging setup.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("stream-feed-sdk")
except PackageNotFoundError:
    __version__ = "unknown"

from .client import StreamClient, connect
from .config import StreamConfig, TelemetryConfig
from .core.events import ClientEvent
from .errors import (
    ApiFailure,
    ConfigurationError,
    ErrorKind,
    SchemaError,
    StreamError,
    TransportError,
    ValidationError,
)
from .models import RequestDescriptor, UserSession
from .telemetry import configure_telemetry

__all__ = [
    "StreamClient",
    "connect",
    "StreamConfig",
    "TelemetryConfig",
    "configure_telemetry",
    "ClientEvent",
    "StreamError",
    "ErrorKind",
    "ConfigurationError",
    "ValidationError",
    "SchemaError",
    "TransportError",
    "ApiFailure",
    "RequestDescriptor",
    "UserSession",
]
