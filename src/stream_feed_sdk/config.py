"""Configuration for the Stream Feed SDK.

Uses Pydantic v2 frozen models; a client's configuration never changes after
construction.
"""

from __future__ import annotations

import os
from typing import Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)

from .signing import is_jwt_signature

DEFAULT_FAYE_URL = "https://faye-us-east.stream-io-api.com/faye"
LOCAL_FAYE_URL = "http://localhost:9999/faye/"


class TelemetryConfig(BaseModel):
    """Structured logging and tracing configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_name: str = "stream-feed-sdk"
    log_level: str = "INFO"


class StreamConfig(BaseModel):
    """Main configuration for a Stream client.

    Exactly one credential is set: ``api_secret`` for server mode (the client
    can mint scoped tokens) or ``user_token`` for client mode.
    """

    model_config = ConfigDict(frozen=True, validate_default=True)

    api_key: str = Field(..., min_length=1)

    # Credentials
    api_secret: SecretStr | None = None
    user_token: str | None = None

    app_id: str | None = None

    # Routing
    location: str | None = None
    group: str = "unspecified"
    version: str = "v1.0"
    protocol: str = "https"
    local: bool = False
    url_override: dict[str, str] = Field(default_factory=dict)
    faye_url: str | None = None

    # Behaviour
    expire_tokens: bool = False
    browser: bool = False
    keep_alive: bool = True

    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @field_validator("app_id", mode="before")
    @classmethod
    def coerce_app_id(cls, v: Any) -> Any:
        """App ids are frequently handed over as integers."""
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("protocol")
    @classmethod
    def validate_protocol(cls, v: str) -> str:
        if v not in {"http", "https"}:
            msg = f"Unsupported protocol: {v}"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def check_credentials(self) -> Self:
        """Require exactly one of api_secret / user_token."""
        if (self.api_secret is None) == (self.user_token is None):
            msg = "Exactly one of api_secret or user_token must be provided"
            raise ValueError(msg)
        return self

    @property
    def using_api_secret(self) -> bool:
        return self.api_secret is not None

    @property
    def secret(self) -> str | None:
        """Shared secret in clear text, or None in client mode."""
        return self.api_secret.get_secret_value() if self.api_secret else None

    @property
    def realtime_url(self) -> str:
        if os.environ.get("LOCAL_FAYE"):
            return LOCAL_FAYE_URL
        return self.faye_url or DEFAULT_FAYE_URL

    @classmethod
    def from_credentials(
        cls,
        api_key: str,
        secret_or_token: str,
        app_id: str | int | None = None,
        **options: Any,
    ) -> Self:
        """Build a config from a credential of unknown kind.

        A structured (signed) token is taken as a user token, anything else
        as the shared API secret.
        """
        if is_jwt_signature(secret_or_token):
            return cls(api_key=api_key, user_token=secret_or_token, app_id=app_id, **options)
        return cls(api_key=api_key, api_secret=secret_or_token, app_id=app_id, **options)

    @classmethod
    def from_env(cls, prefix: str = "STREAM_") -> Self:
        """Create config from environment variables."""

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        api_key = get_env("API_KEY")
        if not api_key:
            msg = f"{prefix}API_KEY environment variable is required"
            raise ValueError(msg)

        return cls(
            api_key=api_key,
            api_secret=get_env("API_SECRET"),
            user_token=get_env("USER_TOKEN"),
            app_id=get_env("APP_ID"),
            location=get_env("LOCATION"),
        )
