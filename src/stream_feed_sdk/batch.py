"""Server-side batch operations, composed into ``StreamClient.batch``."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from .core.errors import ErrorFactory
from .core.validation import validate_feed_id
from .errors import ValidationError
from .models import RequestDescriptor
from .signing import WILDCARD

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from .core.dispatcher import CompletionCallback, Dispatcher
    from .signing import TokenIssuer


def _require_list(value: Any, name: str) -> list[Any]:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise ValidationError(f"The {name} argument should be a list")
    return list(value)


class BatchOperations:
    """Fan-out writes that need the application secret.

    Arguments are checked when the method is called; the returned awaitable
    performs the request.
    """

    def __init__(self, dispatcher: Dispatcher, issuer: TokenIssuer) -> None:
        self._dispatcher = dispatcher
        self._issuer = issuer

    def _token(self, resource: str) -> str:
        if not self._issuer.has_secret:
            raise ErrorFactory.server_side_only()
        return self._issuer.issue(resource, WILDCARD, feed_id=WILDCARD)

    def add_to_many(
        self,
        activity: Mapping[str, Any],
        feeds: Sequence[str],
        *,
        callback: CompletionCallback | None = None,
    ) -> Awaitable[Any]:
        """Add one activity to many feeds (``["user:1", "timeline:2"]``)."""
        feed_ids = [validate_feed_id(feed) for feed in _require_list(feeds, "feeds")]
        descriptor = RequestDescriptor(
            url="feed/add_to_many/",
            body={"activity": dict(activity), "feeds": feed_ids},
            signature=self._token("feed"),
        )
        return self._dispatcher.post(descriptor, callback)

    def follow_many(
        self,
        follows: Sequence[Mapping[str, Any]],
        *,
        activity_copy_limit: int | None = None,
        callback: CompletionCallback | None = None,
    ) -> Awaitable[Any]:
        """Create follow relations, each ``{"source": "a:1", "target": "b:2"}``."""
        relations = self._relations(follows, "follows")
        query = {}
        if activity_copy_limit is not None:
            query["activity_copy_limit"] = activity_copy_limit
        descriptor = RequestDescriptor(
            url="follow_many/",
            query=query,
            body=relations,
            signature=self._token("follower"),
        )
        return self._dispatcher.post(descriptor, callback)

    def unfollow_many(
        self,
        unfollows: Sequence[Mapping[str, Any]],
        *,
        callback: CompletionCallback | None = None,
    ) -> Awaitable[Any]:
        """Remove follow relations, optionally with ``keep_history``."""
        relations = self._relations(unfollows, "unfollows")
        descriptor = RequestDescriptor(
            url="unfollow_many/",
            body=relations,
            signature=self._token(WILDCARD),
        )
        return self._dispatcher.post(descriptor, callback)

    @staticmethod
    def _relations(items: Any, name: str) -> list[dict[str, Any]]:
        relations = []
        for item in _require_list(items, name):
            if not isinstance(item, Mapping) or "source" not in item or "target" not in item:
                raise ValidationError(f"{name} elements should have a source and a target")
            validate_feed_id(item["source"])
            validate_feed_id(item["target"])
            relations.append(dict(item))
        return relations
