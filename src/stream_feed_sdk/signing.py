"""Scoped token issuance and signature classification.

Tokens are HS256 JWTs signed with the application secret. Their claims name
the ``resource`` and ``action`` they grant plus optional ``feed_id`` /
``user_id`` scope attributes, where ``"*"`` means every resource of that kind.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import time
from enum import StrEnum
from typing import Any

import jwt

from .errors import ConfigurationError

JWT_ALGORITHM = "HS256"
WILDCARD = "*"

# header.payload.signature, the signature segment may be empty
_JWS_RE = re.compile(r"^[a-zA-Z0-9\-_]+?\.[a-zA-Z0-9\-_]+?\.([a-zA-Z0-9\-_]+)?$")

MISSING_SECRET_MESSAGE = (
    "Missing secret, which is needed to perform signed requests, "
    "configure the client with api_secret"
)


class AuthType(StrEnum):
    """Values of the ``stream-auth-type`` header."""

    JWT = "jwt"
    SIMPLE = "simple"


def _header_from_jws(token: str) -> dict[str, Any] | None:
    encoded = token.split(".", 1)[0]
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        header = json.loads(base64.urlsafe_b64decode(padded))
    except (binascii.Error, ValueError):
        return None
    return header if isinstance(header, dict) and header else None


def bearer_segment(signature: str) -> str:
    """Trailing segment of a signature, after the last space."""
    return signature.rsplit(" ", 1)[-1]


def is_jwt_signature(signature: str | None) -> bool:
    """Whether ``signature`` is a structured token.

    Accepts an optional human readable scope prefix (``"user1 <jwt>"``); only
    the segment after the last space is inspected.
    """
    if not signature:
        return False
    token = bearer_segment(signature)
    return bool(_JWS_RE.match(token)) and _header_from_jws(token) is not None


def classify_signature(signature: str | None) -> tuple[AuthType, str]:
    """Select the auth scheme and the ``Authorization`` value for a signature."""
    if is_jwt_signature(signature):
        return AuthType.JWT, bearer_segment(signature or "")
    return AuthType.SIMPLE, signature or ""


def scope_token(
    secret: str,
    resource: str,
    action: str,
    *,
    feed_id: str | None = None,
    user_id: str | None = None,
    expire_tokens: bool = False,
) -> str:
    """Sign a scoped token. ``iat`` is only embedded when expire_tokens is set."""
    payload: dict[str, Any] = {"resource": resource, "action": action}
    if feed_id:
        payload["feed_id"] = feed_id
    if user_id:
        payload["user_id"] = user_id
    if expire_tokens:
        payload["iat"] = int(time.time())
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def user_session_token(
    secret: str,
    user_id: str,
    extra_data: dict[str, Any] | None = None,
    *,
    expire_tokens: bool = False,
) -> str:
    payload: dict[str, Any] = {"user_id": user_id, **(extra_data or {})}
    if expire_tokens:
        payload["iat"] = int(time.time())
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_unverified(token: str) -> dict[str, Any]:
    """Claims of a structured token without signature verification."""
    return jwt.decode(bearer_segment(token), options={"verify_signature": False})


class TokenIssuer:
    """Derives scoped tokens from the shared secret.

    The personalization, collections and analytics tokens are memoized for the
    lifetime of the issuer. Concurrent first access may compute a token twice;
    both values carry identical claims, so either may land in the cache.
    """

    def __init__(self, secret: str | None, *, expire_tokens: bool = False) -> None:
        self._secret = secret
        self.expire_tokens = expire_tokens
        self._memo: dict[str, str] = {}

    @property
    def has_secret(self) -> bool:
        return self._secret is not None

    def _require_secret(self) -> str:
        if self._secret is None:
            raise ConfigurationError(MISSING_SECRET_MESSAGE, field="api_secret")
        return self._secret

    def issue(
        self,
        resource: str,
        action: str,
        *,
        feed_id: str | None = None,
        user_id: str | None = None,
        expire_tokens: bool | None = None,
    ) -> str:
        """Sign a token for ``resource``/``action`` narrowed by the scope attributes.

        Raises:
            ConfigurationError: If the issuer holds no secret.
        """
        return scope_token(
            self._require_secret(),
            resource,
            action,
            feed_id=feed_id,
            user_id=user_id,
            expire_tokens=self.expire_tokens if expire_tokens is None else expire_tokens,
        )

    def _memoized(self, resource: str, **scope: str) -> str:
        token = self._memo.get(resource)
        if token is None:
            token = self.issue(resource, WILDCARD, **scope)
            self._memo[resource] = token
        return token

    def personalization_token(self) -> str:
        return self._memoized("personalization", user_id=WILDCARD, feed_id=WILDCARD)

    def collections_token(self) -> str:
        return self._memoized("collections", feed_id=WILDCARD)

    def analytics_token(self) -> str:
        return self._memoized("analytics", user_id=WILDCARD)

    def feed_token(self, feed_together: str, *, read_only: bool) -> str:
        """Per-feed token, recomputed on every call."""
        return self.issue(WILDCARD, "read" if read_only else WILDCARD, feed_id=feed_together)

    def user_token(self, user_id: str, extra_data: dict[str, Any] | None = None) -> str:
        return user_session_token(
            self._require_secret(),
            user_id,
            extra_data,
            expire_tokens=self.expire_tokens,
        )
