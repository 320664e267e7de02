"""Realtime notifications over the Bayeux protocol.

Outgoing messages for a registered channel are stamped with that channel's
credentials by ``SubscriptionAuthorizer`` right before they leave the process.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from typing import Any, Protocol

import httpx

from .core.dispatcher import decode_body
from .core.errors import ErrorFactory
from .errors import ApiFailure
from .models import Subscription
from .telemetry import get_logger, trace_operation

Message = dict[str, Any]
MessageCallback = Callable[[Any], Any]

REALTIME_TIMEOUT = 10.0
BAYEUX_VERSION = "1.0"
CONNECTION_TYPE = "long-polling"


class RealtimeExtension(Protocol):
    """Message filter attached to a realtime client."""

    def incoming(self, message: Message) -> Message | None:
        ...

    def outgoing(self, message: Message) -> Message | None:
        ...


class SubscriptionRegistry:
    """Channel-keyed subscription credentials owned by one client."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}

    def register(self, channel: str, user_id: str, token: str) -> Subscription:
        subscription = Subscription(channel=channel, user_id=user_id, token=token)
        self._subscriptions[channel] = subscription
        return subscription

    def unregister(self, channel: str) -> Subscription | None:
        return self._subscriptions.pop(channel, None)

    def get(self, channel: str | None) -> Subscription | None:
        if channel is None:
            return None
        return self._subscriptions.get(channel)

    def __contains__(self, channel: object) -> bool:
        return channel in self._subscriptions

    def __len__(self) -> int:
        return len(self._subscriptions)


class SubscriptionAuthorizer:
    """Injects per-channel credentials into outgoing realtime messages."""

    def __init__(self, api_key: str, subscriptions: SubscriptionRegistry) -> None:
        self.api_key = api_key
        self._subscriptions = subscriptions

    def incoming(self, message: Message) -> Message:
        return message

    def outgoing(self, message: Message) -> Message:
        channel = message.get("subscription") or message.get("channel")
        subscription = self._subscriptions.get(channel)
        if subscription is None:
            return message
        return {
            **message,
            "ext": {
                "user_id": subscription.user_id,
                "api_key": self.api_key,
                "signature": subscription.token,
            },
        }


class BayeuxClient:
    """Minimal long-polling Bayeux client.

    Every outgoing message passes through each extension's ``outgoing`` filter
    in registration order, every incoming one through ``incoming``. A filter
    returning None drops the message.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = REALTIME_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.client_id: str | None = None
        self._http = httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport)
        self._extensions: list[RealtimeExtension] = []
        self._callbacks: dict[str, MessageCallback] = {}
        self._ids = itertools.count(1)
        self._logger = get_logger(component="realtime")

    @property
    def extensions(self) -> tuple[RealtimeExtension, ...]:
        return tuple(self._extensions)

    @property
    def channels(self) -> tuple[str, ...]:
        return tuple(self._callbacks)

    def add_extension(self, extension: RealtimeExtension) -> None:
        self._extensions.append(extension)

    async def handshake(self) -> str:
        """Open a session and return the client id."""
        reply = await self._meta(
            {
                "channel": "/meta/handshake",
                "version": BAYEUX_VERSION,
                "supportedConnectionTypes": [CONNECTION_TYPE],
            }
        )
        self.client_id = reply["clientId"]
        return self.client_id

    async def subscribe(self, channel: str, callback: MessageCallback) -> None:
        await self._ensure_session()
        await self._meta(
            {"channel": "/meta/subscribe", "clientId": self.client_id, "subscription": channel}
        )
        self._callbacks[channel] = callback

    async def unsubscribe(self, channel: str) -> None:
        if self._callbacks.pop(channel, None) is None or self.client_id is None:
            return
        await self._meta(
            {"channel": "/meta/unsubscribe", "clientId": self.client_id, "subscription": channel}
        )

    async def publish(self, channel: str, data: Any) -> None:
        await self._ensure_session()
        await self._exchange([{"channel": channel, "data": data, "clientId": self.client_id}])

    async def connect(self) -> list[Message]:
        """Run one long-poll and deliver the data messages it returns."""
        await self._ensure_session()
        replies = await self._exchange(
            [{"channel": "/meta/connect", "clientId": self.client_id, "connectionType": CONNECTION_TYPE}]
        )
        delivered = []
        for reply in replies:
            channel = reply.get("channel", "")
            if channel.startswith("/meta/") or "data" not in reply:
                continue
            callback = self._callbacks.get(channel)
            if callback is not None:
                callback(reply["data"])
                delivered.append(reply)
        return delivered

    async def close(self) -> None:
        """Disconnect the session, if any, and close the HTTP client."""
        try:
            if self.client_id is not None:
                await self._exchange([{"channel": "/meta/disconnect", "clientId": self.client_id}])
        finally:
            self.client_id = None
            self._callbacks.clear()
            await self._http.aclose()

    async def _ensure_session(self) -> None:
        if self.client_id is None:
            await self.handshake()

    async def _meta(self, message: Message) -> Message:
        channel = message["channel"]
        replies = await self._exchange([message])
        reply = next((r for r in replies if r.get("channel") == channel), None)
        if reply is None or not reply.get("successful", False):
            error = reply.get("error") if reply else "no reply"
            raise ApiFailure(f"{channel} failed: {error}", status_code=200, raw_body=replies)
        return reply

    async def _exchange(self, messages: list[Message]) -> list[Message]:
        outgoing = []
        for message in messages:
            filtered = self._filter(dict(message, id=str(next(self._ids))), "outgoing")
            if filtered is not None:
                outgoing.append(filtered)
        if not outgoing:
            return []

        with trace_operation("realtime_exchange", attributes={"bayeux.channel": outgoing[0]["channel"]}):
            try:
                response = await self._http.post(self.url, json=outgoing)
            except httpx.HTTPError as e:
                self._logger.warning("Realtime transport failure", error=str(e))
                raise ErrorFactory.from_exception(e) from e

        body = decode_body(response)
        if not ErrorFactory.is_success(response.status_code):
            raise ErrorFactory.from_response(response.status_code, body)

        incoming = []
        replies = body if isinstance(body, list) else [body]
        for reply in replies:
            if not isinstance(reply, dict):
                continue
            filtered = self._filter(reply, "incoming")
            if filtered is not None:
                incoming.append(filtered)
        return incoming

    def _filter(self, message: Message, direction: str) -> Message | None:
        for extension in self._extensions:
            message = getattr(extension, direction)(message)
            if message is None:
                return None
        return message
