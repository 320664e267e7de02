"""Async Stream Feed client.

Server mode (``api_secret``) mints scoped tokens for every request; client
mode (``user_token``) forwards the pre-issued user token.
"""

from __future__ import annotations

import json
import os
from collections.abc import Awaitable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Self
from urllib.parse import quote, urlencode, urlparse

import httpx
import jwt

from .batch import BatchOperations
from .config import StreamConfig
from .core.dispatcher import Dispatcher
from .core.enricher import RequestEnricher
from .core.errors import ErrorFactory
from .core.events import ClientEvent, EventBus, HandlerRegistration
from .core.validation import BatchChangeValidator
from .errors import ApiFailure, ConfigurationError, SchemaError, ValidationError
from .feed import StreamFeed
from .http import create_async_http_client
from .images import ImageStore
from .models import RequestDescriptor, UserSession
from .realtime import BayeuxClient, SubscriptionAuthorizer, SubscriptionRegistry
from .signing import WILDCARD, TokenIssuer, decode_unverified
from .telemetry import get_logger

if TYPE_CHECKING:
    from .core.dispatcher import CompletionCallback
    from .core.events import Handler

DEFAULT_ANALYTICS_URL = "https://analytics.stream-io-api.com/analytics/"

_REACTION_SHORTCUTS = {
    "own": "withOwnReactions",
    "recent": "withRecentReactions",
    "counts": "withReactionCounts",
    "own_children": "withOwnChildren",
}


class StreamClient:
    """Asynchronous client for the Stream feed API."""

    def __init__(
        self,
        config: StreamConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        realtime_transport: httpx.AsyncBaseTransport | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize client.

        Args:
            config: SDK configuration.
            transport: Optional HTTP transport for API requests.
            realtime_transport: Optional HTTP transport for the realtime client.
            environ: Environment used for URL overrides (defaults to os.environ).

        Raises:
            ConfigurationError: If a secret is used in browser mode, or the
                user token carries no user_id.
        """
        if config.browser and config.using_api_secret:
            raise ConfigurationError(
                "You are publicly sharing your App Secret. Do not expose the App Secret "
                "in browsers, native mobile apps, or other non-trusted environments.",
                field="api_secret",
            )

        self.config = config
        self._environ = os.environ if environ is None else environ
        self._logger = get_logger()

        self.issuer = TokenIssuer(config.secret, expire_tokens=config.expire_tokens)
        self.user_id: str | None = None
        self.auth_payload: dict[str, Any] | None = None
        if config.user_token is not None:
            self.auth_payload = self._decode_user_token(config.user_token)
            self.user_id = str(self.auth_payload["user_id"])
        self.enrich_by_default = not config.using_api_secret

        self.events = EventBus()
        self.subscriptions = SubscriptionRegistry()
        self._http = create_async_http_client(config, transport=transport)
        self.enricher = RequestEnricher(config, self.get_or_create_token, environ=self._environ)
        self.dispatcher = Dispatcher(self._http, self.enricher, self.events)
        self.batch = BatchOperations(self.dispatcher, self.issuer)
        self.images = ImageStore(self.dispatcher, self.get_or_create_token)
        self._changes = BatchChangeValidator()

        self._realtime: BayeuxClient | None = None
        self._realtime_transport = realtime_transport

    @staticmethod
    def _decode_user_token(token: str) -> dict[str, Any]:
        try:
            payload = decode_unverified(token)
        except jwt.exceptions.DecodeError as e:
            raise ConfigurationError(f"Invalid user token: {e}", field="user_token") from e
        if not payload.get("user_id"):
            raise ConfigurationError("user_id is missing in user token", field="user_token")
        return payload

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client and the realtime client, if created."""
        try:
            if self._realtime is not None:
                await self._realtime.close()
        finally:
            self._realtime = None
            await self._http.aclose()

    # Observation hooks

    def on(self, event: ClientEvent | str, handler: Handler) -> HandlerRegistration:
        """Register the handler for ``request`` or ``response``, replacing any previous one."""
        return self.events.on(event, handler)

    def off(self, event: ClientEvent | str | None = None) -> None:
        """Remove the handler for ``event``, or every handler when omitted."""
        self.events.off(event)

    # Dispatch

    async def get(self, descriptor: RequestDescriptor, callback: CompletionCallback | None = None) -> Any:
        return await self.dispatcher.get(descriptor, callback)

    async def post(self, descriptor: RequestDescriptor, callback: CompletionCallback | None = None) -> Any:
        return await self.dispatcher.post(descriptor, callback)

    async def put(self, descriptor: RequestDescriptor, callback: CompletionCallback | None = None) -> Any:
        return await self.dispatcher.put(descriptor, callback)

    async def delete(self, descriptor: RequestDescriptor, callback: CompletionCallback | None = None) -> Any:
        return await self.dispatcher.delete(descriptor, callback)

    def base_url_for(self, service_name: str | None = None) -> str:
        return self.enricher.base_url_for(service_name)

    # Tokens

    def get_or_create_token(self) -> str:
        """Ambient signature: a full-scope token in server mode, the user token otherwise.

        The server-mode token never carries ``iat``, whatever ``expire_tokens`` says.
        """
        if self.issuer.has_secret:
            return self.issuer.issue(WILDCARD, WILDCARD, feed_id=WILDCARD, expire_tokens=False)
        return self.config.user_token or ""

    def get_personalization_token(self) -> str:
        return self.issuer.personalization_token()

    def get_collections_token(self) -> str:
        return self.issuer.collections_token()

    def get_analytics_token(self) -> str:
        return self.issuer.analytics_token()

    def get_read_only_token(self, feed_slug: str, user_id: str) -> str:
        return self.feed(feed_slug, user_id).get_read_only_token()

    def get_read_write_token(self, feed_slug: str, user_id: str) -> str:
        return self.feed(feed_slug, user_id).get_read_write_token()

    def create_user_token(self, user_id: str, extra_data: dict[str, Any] | None = None) -> str:
        """Sign a user session token for client-mode use.

        Raises:
            ConfigurationError: In client mode.
        """
        if not self.issuer.has_secret:
            raise ConfigurationError(
                "In order to create user tokens you need to initialize the API client "
                "with your API Secret",
                field="api_secret",
            )
        return self.issuer.user_token(user_id, extra_data)

    # Feeds

    def feed(self, feed_slug: str, user_id: str | None = None, token: str | None = None) -> StreamFeed:
        """Handle for the feed ``feed_slug:user_id`` (user_id defaults to the token's user)."""
        user_id = user_id if user_id is not None else self.user_id
        if user_id is None:
            raise ValidationError("A user id is required to build a feed")
        if token is None:
            if self.issuer.has_secret:
                token = self.issuer.feed_token(f"{feed_slug}{user_id}", read_only=False)
            else:
                token = self.config.user_token or ""
        return StreamFeed(self, feed_slug, user_id, token)

    # Activities

    def _activities_token(self) -> str:
        if self.issuer.has_secret:
            return self.issuer.issue("activities", WILDCARD, feed_id=WILDCARD)
        return self.config.user_token or ""

    def update_activities(
        self,
        activities: Sequence[Mapping[str, Any]],
        *,
        callback: CompletionCallback | None = None,
    ) -> Awaitable[Any]:
        """Replace the supplied activities.

        Raises:
            ConfigurationError: In client mode.
            ValidationError: If ``activities`` is not a list.
        """
        if not self.issuer.has_secret:
            raise ErrorFactory.server_side_only()
        if not isinstance(activities, Sequence) or isinstance(activities, (str, bytes)):
            raise ValidationError("The activities argument should be a list")

        descriptor = RequestDescriptor(
            url="activities/",
            body={"activities": list(activities)},
            signature=self._activities_token(),
        )
        return self.dispatcher.post(descriptor, callback)

    def update_activity(
        self,
        activity: Mapping[str, Any],
        *,
        callback: CompletionCallback | None = None,
    ) -> Awaitable[Any]:
        return self.update_activities([activity], callback=callback)

    def get_activities(
        self,
        *,
        ids: Sequence[str] | None = None,
        foreign_id_times: Sequence[Mapping[str, Any]] | None = None,
        callback: CompletionCallback | None = None,
        **params: Any,
    ) -> Awaitable[Any]:
        """Retrieve activities by id, or by foreign id and time.

        ``foreign_id_times`` items are ``{"foreign_id": ..., "time": ...}``.
        ``reactions={"own": True, "recent": True, "counts": True}`` is a
        shortcut for the ``with*`` enrichment options and ``enrich`` forces
        the enriched endpoint on or off.
        """
        if ids is not None:
            if not isinstance(ids, Sequence) or isinstance(ids, str):
                raise ValidationError("The ids argument should be a list")
            params["ids"] = ",".join(str(activity_id) for activity_id in ids)
        elif foreign_id_times is not None:
            if not isinstance(foreign_id_times, Sequence):
                raise ValidationError("The foreign_id_times argument should be a list")
            foreign_ids = []
            timestamps = []
            for item in foreign_id_times:
                if not isinstance(item, Mapping):
                    raise ValidationError("foreign_id_times elements should be dicts")
                foreign_ids.append(str(item.get("foreign_id", item.get("foreignID"))))
                timestamps.append(str(item.get("time")))
            params["foreign_ids"] = ",".join(foreign_ids)
            params["timestamps"] = ",".join(timestamps)
        else:
            raise ValidationError("Missing ids or foreign_id_times params")

        self._replace_reaction_options(params)
        path = "enrich/activities/" if self._should_use_enrich_endpoint(params) else "activities/"
        descriptor = RequestDescriptor(url=path, query=params, signature=self._activities_token())
        return self.dispatcher.get(descriptor, callback)

    @staticmethod
    def _replace_reaction_options(params: dict[str, Any]) -> None:
        reactions = params.pop("reactions", None)
        if not reactions:
            return
        for shortcut, option in _REACTION_SHORTCUTS.items():
            if reactions.get(shortcut) is not None:
                params[option] = reactions[shortcut]

    def _should_use_enrich_endpoint(self, params: dict[str, Any]) -> bool:
        enrich = params.pop("enrich", None)
        if enrich is not None:
            return bool(enrich)
        return self.enrich_by_default or any(
            params.get(option) is not None for option in _REACTION_SHORTCUTS.values()
        )

    def activities_partial_update(
        self,
        changes: Sequence[dict[str, Any]],
        *,
        callback: CompletionCallback | None = None,
    ) -> Awaitable[Any]:
        """Apply ``set``/``unset`` changesets to several activities.

        Raises:
            ValidationError: If a changeset is malformed (raised immediately).
        """
        changesets = self._changes.validate(changes)
        descriptor = RequestDescriptor(
            url="activity/",
            body={"changes": changesets},
            signature=self._activities_token(),
        )
        return self.dispatcher.post(descriptor, callback)

    def activity_partial_update(
        self,
        data: dict[str, Any],
        *,
        callback: CompletionCallback | None = None,
    ) -> Awaitable[dict[str, Any]]:
        """Partially update one activity and return it merged with the response metadata.

        Raises:
            ValidationError: If the changeset is malformed (raised immediately).
            ApiFailure: If a 2xx response carries no updated activity.
        """
        responses: list[httpx.Response] = []

        def completed(error: Any, response: httpx.Response | None, body: Any) -> None:
            if response is not None:
                responses.append(response)
            if callback is not None:
                callback(error, response, body)

        pending = self.activities_partial_update([data], callback=completed)
        return self._unwrap_single_activity(pending, responses)

    @staticmethod
    async def _unwrap_single_activity(
        pending: Awaitable[Any], responses: list[httpx.Response]
    ) -> dict[str, Any]:
        body = await pending
        activities = body.get("activities") if isinstance(body, Mapping) else None
        if not (isinstance(activities, list) and activities and isinstance(activities[0], Mapping)):
            raise ApiFailure(
                "Partial update response carries no activity",
                status_code=responses[0].status_code,
                raw_body=body,
            )
        activity = dict(activities[0])
        activity.update((key, value) for key, value in body.items() if key != "activities")
        return activity

    # Misc endpoints

    async def og(self, url: str, *, callback: CompletionCallback | None = None) -> Any:
        """Scrape Open Graph metadata of ``url``."""
        descriptor = RequestDescriptor(url="og/", query={"url": url}, signature=self.get_or_create_token())
        return await self.dispatcher.get(descriptor, callback)

    async def personalized_feed(self, *, callback: CompletionCallback | None = None, **options: Any) -> Any:
        descriptor = RequestDescriptor(
            url="enrich/personalization/feed/",
            query=options,
            signature=self.get_or_create_token(),
        )
        return await self.dispatcher.get(descriptor, callback)

    def set_user(
        self,
        data: Mapping[str, Any],
        *,
        callback: CompletionCallback | None = None,
    ) -> Awaitable[UserSession]:
        """Get or create the token's user with ``data`` and return it as a session.

        Raises:
            ConfigurationError: In server mode.
        """
        if self.issuer.has_secret or self.user_id is None:
            raise ErrorFactory.client_side_only()

        body = {key: value for key, value in data.items() if key != "id"}
        descriptor = RequestDescriptor(
            url="user/",
            query={"get_or_create": "true"},
            body={"id": self.user_id, "data": body},
            signature=self.config.user_token,
        )
        return self._user_session(self.dispatcher.post(descriptor, callback))

    @staticmethod
    async def _user_session(pending: Awaitable[Any]) -> UserSession:
        return UserSession.model_validate(await pending)

    def create_redirect_url(self, target_url: str, events: Sequence[Mapping[str, Any]]) -> str:
        """Build an analytics redirect URL tracking ``events`` before landing on ``target_url``.

        Raises:
            SchemaError: If ``target_url`` has no host.
            ConfigurationError: In client mode.
        """
        parsed = urlparse(target_url)
        if not parsed.hostname:
            raise SchemaError(f'Invalid URI: "{target_url}"', url=target_url)

        token = self.issuer.issue("redirect_and_track", WILDCARD, user_id=WILDCARD)
        analytics_url = self._environ.get("STREAM_ANALYTICS_BASE_URL") or DEFAULT_ANALYTICS_URL
        query = urlencode(
            {
                "auth_type": "jwt",
                "authorization": token,
                "url": target_url,
                "api_key": self.config.api_key,
                "events": json.dumps(list(events), separators=(",", ":")),
            },
            quote_via=quote,
            safe="",
        )
        return f"{analytics_url}redirect/?{query}"

    # Realtime

    @property
    def has_realtime_client(self) -> bool:
        return self._realtime is not None

    def get_realtime_client(self) -> BayeuxClient:
        """Get or create the realtime client; the authorizer is attached once, at creation."""
        if self._realtime is None:
            realtime = BayeuxClient(self.config.realtime_url, transport=self._realtime_transport)
            realtime.add_extension(SubscriptionAuthorizer(self.config.api_key, self.subscriptions))
            self._realtime = realtime
            self._logger.debug("Realtime client created", url=self.config.realtime_url)
        return self._realtime


def connect(
    api_key: str,
    secret_or_token: str,
    app_id: str | int | None = None,
    **options: Any,
) -> StreamClient:
    """Create a client, classifying ``secret_or_token`` as secret or user token."""
    return StreamClient(StreamConfig.from_credentials(api_key, secret_or_token, app_id, **options))
