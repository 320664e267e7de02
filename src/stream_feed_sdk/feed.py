"""Feed handles: identity, scoped tokens and realtime subscription."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .core.errors import ErrorFactory
from .core.validation import validate_feed_slug, validate_user_id
from .errors import ConfigurationError

if TYPE_CHECKING:
    from .client import StreamClient
    from .realtime import MessageCallback


class StreamFeed:
    """A single feed (``slug:user``) as seen by one client."""

    def __init__(self, client: StreamClient, feed_slug: str, user_id: str, token: str) -> None:
        self.client = client
        self.slug = validate_feed_slug(feed_slug)
        self.user_id = validate_user_id(user_id)
        self.token = token

        self.id = f"{self.slug}:{self.user_id}"
        self.feed_url = self.id.replace(":", "/")
        self.feed_together = self.id.replace(":", "")
        self.signature = f"{self.feed_together} {self.token}"

    def __repr__(self) -> str:
        return f"StreamFeed(id={self.id!r})"

    @property
    def notification_channel(self) -> str:
        if not self.client.config.app_id:
            raise ConfigurationError(
                "Missing app id, which is needed to subscribe, configure the client with app_id",
                field="app_id",
            )
        return f"site-{self.client.config.app_id}-feed-{self.feed_together}"

    @property
    def channel(self) -> str:
        """Realtime channel key of this feed."""
        return f"/{self.notification_channel}"

    def get_read_only_token(self) -> str:
        if not self.client.issuer.has_secret:
            raise ErrorFactory.missing_secret()
        return self.client.issuer.feed_token(self.feed_together, read_only=True)

    def get_read_write_token(self) -> str:
        if not self.client.issuer.has_secret:
            raise ErrorFactory.missing_secret()
        return self.client.issuer.feed_token(self.feed_together, read_only=False)

    async def subscribe(self, callback: MessageCallback) -> None:
        """Receive realtime updates of this feed through ``callback``."""
        channel = self.channel
        self.client.subscriptions.register(channel, self.user_id, self.token)
        realtime = self.client.get_realtime_client()
        try:
            await realtime.subscribe(channel, callback)
        except Exception:
            self.client.subscriptions.unregister(channel)
            raise

    async def unsubscribe(self) -> None:
        channel = self.channel
        try:
            if self.client.has_realtime_client:
                await self.client.get_realtime_client().unsubscribe(channel)
        finally:
            self.client.subscriptions.unregister(channel)
