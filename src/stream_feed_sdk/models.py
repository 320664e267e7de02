"""Pydantic models for the Stream Feed SDK.

Request descriptors are frozen: enrichment produces a new ``EnrichedRequest``
instead of mutating the caller's descriptor.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .signing import AuthType


class RequestDescriptor(BaseModel):
    """Relative request built by a resource wrapper."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="URL relative to the versioned service root")
    query: dict[str, Any] = Field(default_factory=dict)
    body: Any = None
    signature: str | None = None
    service_name: str = "api"


class EnrichedRequest(BaseModel):
    """Absolute, authenticated request ready for the transport."""

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    params: dict[str, Any]
    headers: dict[str, str]
    body: Any = None
    timeout: float
    auth_type: AuthType
    with_credentials: bool = False


class Subscription(BaseModel):
    """Credentials injected into realtime messages for one channel."""

    model_config = ConfigDict(frozen=True)

    channel: str
    user_id: str
    token: str


class UserSession(BaseModel):
    """The current user of a client-mode client, held by the caller."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None
