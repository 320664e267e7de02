"""Request enrichment: absolute URL, auth headers, query and transport options.

Base URLs are resolved per service name, first match wins:

1. ``url_override[service]`` in the client configuration
2. ``STREAM_BASE_URL`` (api) or ``STREAM_<SERVICE>_URL`` in the environment
3. the local development flag (``local`` option or ``LOCAL`` environment)
4. the data-center ``location``, combined with ``protocol``
5. the hosted default for the service
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

from .. import __version__
from ..models import EnrichedRequest, RequestDescriptor
from ..signing import classify_signature

if TYPE_CHECKING:
    from ..config import StreamConfig

DEFAULT_SERVICE = "api"
HOSTED_DOMAIN = "stream-io-api.com"
LOCAL_URL = "http://localhost:8000/{service}/"
REQUEST_TIMEOUT = 10.0

AUTH_TYPE_HEADER = "stream-auth-type"
CLIENT_HEADER = "X-Stream-Client"


def environment_key(service_name: str) -> str:
    """Environment variable overriding the base URL of ``service_name``."""
    if service_name == DEFAULT_SERVICE:
        return "STREAM_BASE_URL"
    return f"STREAM_{service_name.upper()}_URL"


def base_url_for(
    config: StreamConfig,
    service_name: str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Resolve the root URL of a service, with a trailing slash."""
    service = service_name or DEFAULT_SERVICE
    env = os.environ if environ is None else environ

    override = config.url_override.get(service)
    if override:
        return override

    from_env = env.get(environment_key(service))
    if from_env:
        return from_env

    if config.local or env.get("LOCAL"):
        return LOCAL_URL.format(service=service)

    if config.location:
        return f"{config.protocol}://{config.location}-{service}.{HOSTED_DOMAIN}/{service}/"

    return f"https://{service}.{HOSTED_DOMAIN}/{service}/"


def user_agent(*, browser: bool) -> str:
    runtime = "browser" if browser else "server"
    return f"stream-python-client-{runtime}-{__version__}"


class RequestEnricher:
    """Turns relative request descriptors into authenticated absolute requests."""

    def __init__(
        self,
        config: StreamConfig,
        ambient_signature: Callable[[], str | None],
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize request enricher.

        Args:
            config: SDK configuration.
            ambient_signature: Provides the signature used when a descriptor
                carries none.
            environ: Environment used for URL overrides (defaults to os.environ).
        """
        self.config = config
        self._ambient_signature = ambient_signature
        self._environ = environ

    def base_url_for(self, service_name: str | None = None) -> str:
        return base_url_for(self.config, service_name, environ=self._environ)

    def enrich_url(self, relative_url: str, service_name: str | None = None) -> str:
        return f"{self.base_url_for(service_name)}{self.config.version}/{relative_url}"

    def enrich(self, method: str, descriptor: RequestDescriptor) -> EnrichedRequest:
        """Build the request the transport will send. The descriptor is left untouched."""
        params = dict(descriptor.query)
        params["api_key"] = self.config.api_key
        params["location"] = self.config.group

        signature = descriptor.signature or self._ambient_signature()
        auth_type, authorization = classify_signature(signature)

        headers = {
            AUTH_TYPE_HEADER: auth_type.value,
            "Authorization": authorization,
            CLIENT_HEADER: user_agent(browser=self.config.browser),
        }

        return EnrichedRequest(
            method=method.upper(),
            url=self.enrich_url(descriptor.url, descriptor.service_name),
            params=params,
            headers=headers,
            body=descriptor.body,
            timeout=REQUEST_TIMEOUT,
            auth_type=auth_type,
            with_credentials=False,
        )
