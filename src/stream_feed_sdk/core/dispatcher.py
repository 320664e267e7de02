"""Request dispatch for the Stream Feed SDK.

Each call issues exactly one transport request; there is no retry and no
backoff. Completion order for a call is fixed: the ``response`` observation
hook, then the optional legacy callback, then the awaited result (value or
raised error).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

import httpx
from opentelemetry.trace import Status, StatusCode

from ..errors import StreamError
from ..telemetry import get_logger, record_status, request_span
from .errors import ErrorFactory
from .events import ClientEvent, EventBus

if TYPE_CHECKING:
    from ..models import EnrichedRequest, RequestDescriptor
    from .enricher import RequestEnricher

CompletionCallback = Callable[[StreamError | None, httpx.Response | None, Any], Any]


def decode_body(response: httpx.Response) -> Any:
    """Decode a JSON body, falling back to text for anything else."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class Dispatcher:
    """Sends enriched requests through an ``httpx.AsyncClient`` and classifies the outcome."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        enricher: RequestEnricher,
        events: EventBus,
    ) -> None:
        """Initialize dispatcher.

        Args:
            client: Async HTTP client used as transport.
            enricher: Request enricher.
            events: Observation hooks of the owning client.
        """
        self._client = client
        self._enricher = enricher
        self._events = events
        self._logger = get_logger(component="dispatcher")

    async def get(self, descriptor: RequestDescriptor, callback: CompletionCallback | None = None) -> Any:
        return await self.send("GET", descriptor, callback)

    async def post(self, descriptor: RequestDescriptor, callback: CompletionCallback | None = None) -> Any:
        return await self.send("POST", descriptor, callback)

    async def put(self, descriptor: RequestDescriptor, callback: CompletionCallback | None = None) -> Any:
        return await self.send("PUT", descriptor, callback)

    async def delete(self, descriptor: RequestDescriptor, callback: CompletionCallback | None = None) -> Any:
        return await self.send("DELETE", descriptor, callback)

    async def send(
        self,
        method: str,
        descriptor: RequestDescriptor,
        callback: CompletionCallback | None = None,
    ) -> Any:
        """Dispatch ``descriptor`` with ``method``.

        Args:
            method: HTTP verb.
            descriptor: Relative request.
            callback: Optional legacy completion callback, called once with
                ``(error, response, body)`` before this coroutine completes.

        Returns:
            Decoded response body on a 2xx status.

        Raises:
            TransportError: On connection failure, timeout, or a request that
                could not be built (unencodable body, invalid URL).
            ApiFailure: On a non-2xx status.
        """
        self._events.emit(ClientEvent.REQUEST, method.lower(), descriptor)
        request = self._enricher.enrich(method, descriptor)

        error: StreamError | None = None
        response: httpx.Response | None = None
        body: Any = None

        with request_span(request.method, request.url) as span:
            try:
                response = await self._execute(request)
            except Exception as e:
                error = ErrorFactory.from_exception(e)
                span.set_status(Status(StatusCode.ERROR, error.message))
                self._logger.warning(
                    "Transport failure",
                    method=request.method,
                    url=request.url,
                    error=str(e),
                )
            else:
                body = decode_body(response)
                if not ErrorFactory.is_success(response.status_code):
                    error = ErrorFactory.from_response(response.status_code, body)
                    self._logger.warning(
                        "API failure",
                        method=request.method,
                        url=request.url,
                        status_code=response.status_code,
                    )
                else:
                    self._logger.debug(
                        "Request completed",
                        method=request.method,
                        url=request.url,
                        status_code=response.status_code,
                    )
                record_status(span, response.status_code, error)

        self._events.emit(ClientEvent.RESPONSE, error, response, body)
        if callback is not None:
            callback(error, response, body)

        if error is not None:
            raise error
        return body

    async def _execute(self, request: EnrichedRequest) -> httpx.Response:
        """Send a single request through the transport."""
        http_request = self._client.build_request(
            request.method,
            request.url,
            params=request.params,
            headers=request.headers,
            json=request.body,
            timeout=request.timeout,
        )
        if not request.with_credentials:
            http_request.headers.pop("Cookie", None)
        return await self._client.send(http_request)
