"""Validation of identifiers and partial-update changesets.

All checks run before anything is sent.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from ..errors import ValidationError

_FEED_SLUG_RE = re.compile(r"^\w+$")
_USER_ID_RE = re.compile(r"^[\w-]+$")
_FOREIGN_ID_ALIASES = ("foreignID", "foreignId")


def validate_feed_slug(feed_slug: str) -> str:
    if not isinstance(feed_slug, str) or not _FEED_SLUG_RE.match(feed_slug):
        raise ValidationError(
            f"Invalid feedSlug, please use letters, numbers or _: {feed_slug}"
        )
    return feed_slug


def validate_user_id(user_id: str) -> str:
    if not isinstance(user_id, str) or not _USER_ID_RE.match(user_id):
        raise ValidationError(
            f"Invalid userId, please use letters, numbers, - or _: {user_id}"
        )
    return user_id


def validate_feed_id(feed_id: str) -> str:
    """Validate a ``slug:user`` feed identifier such as ``user:1``."""
    parts = feed_id.split(":")
    if len(parts) != 2:
        raise ValidationError(f"Invalid feedId, expected something like user:1 got {feed_id}")
    validate_feed_slug(parts[0])
    validate_user_id(parts[1])
    return feed_id


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


class BatchChangeValidator:
    """Checks changesets for activity partial updates.

    A changeset identifies its activity either by ``id`` or by ``foreign_id``
    and ``time``; ``set`` maps field paths to values, ``unset`` lists field
    paths. A ``foreignID`` or ``foreignId`` key is moved to the canonical
    ``foreign_id``.
    """

    def validate(self, changes: Any) -> list[dict[str, Any]]:
        """Validate ``changes`` and return them as a list.

        Raises:
            ValidationError: On the first violation found.
        """
        if not _is_sequence(changes):
            raise ValidationError("changes should be a list")

        for index, item in enumerate(changes):
            self._validate_item(index, item)
        return list(changes)

    def _validate_item(self, index: int, item: Any) -> None:
        if not isinstance(item, dict):
            raise ValidationError("changeset should be a dict", details={"index": index})

        for alias in _FOREIGN_ID_ALIASES:
            if item.get(alias) is not None:
                item["foreign_id"] = item.pop(alias)

        has_id = item.get("id") is not None
        has_foreign = item.get("foreign_id") is not None and item.get("time") is not None
        if not has_id and not has_foreign:
            raise ValidationError("missing id or foreign ID and time", details={"index": index})

        if "set" in item and item["set"] is not None and not isinstance(item["set"], Mapping):
            raise ValidationError("set field should be a dict", details={"index": index})

        unset = item.get("unset")
        if unset is not None:
            if not _is_sequence(unset) or not all(isinstance(path, str) for path in unset):
                raise ValidationError(
                    "unset field should be a list of field paths", details={"index": index}
                )
