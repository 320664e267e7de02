"""Unit tests for base URL resolution and request enrichment."""

from __future__ import annotations

import pytest

from stream_feed_sdk.config import StreamConfig
from stream_feed_sdk.core.enricher import (
    RequestEnricher,
    base_url_for,
    environment_key,
    user_agent,
)
from stream_feed_sdk.models import RequestDescriptor
from stream_feed_sdk.signing import AuthType


def config(**options) -> StreamConfig:
    return StreamConfig(api_key="key", api_secret="secret", **options)


class TestBaseUrl:
    """Tests for the base URL precedence chain."""

    def test_hosted_default(self) -> None:
        assert base_url_for(config(), environ={}) == "https://api.stream-io-api.com/api/"

    def test_hosted_default_other_service(self) -> None:
        assert (
            base_url_for(config(), "personalization", environ={})
            == "https://personalization.stream-io-api.com/personalization/"
        )

    def test_local_flag(self) -> None:
        assert base_url_for(config(local=True), environ={}) == "http://localhost:8000/api/"

    def test_local_environment(self) -> None:
        assert base_url_for(config(), environ={"LOCAL": "1"}) == "http://localhost:8000/api/"

    def test_local_beats_location(self) -> None:
        cfg = config(location="us-east", local=True)

        assert base_url_for(cfg, environ={}) == "http://localhost:8000/api/"
        assert base_url_for(config(location="us-east"), environ={"LOCAL": "1"}) == (
            "http://localhost:8000/api/"
        )

    def test_location_uses_protocol(self) -> None:
        cfg = config(location="dublin", protocol="http")

        assert base_url_for(cfg, "api", environ={}) == "http://dublin-api.stream-io-api.com/api/"

    def test_environment_beats_location(self) -> None:
        cfg = config(location="us-east")
        environ = {"STREAM_BASE_URL": "https://proxy.example.com/api/"}

        assert base_url_for(cfg, environ=environ) == "https://proxy.example.com/api/"

    def test_service_environment_key(self) -> None:
        environ = {"STREAM_PERSONALIZATION_URL": "https://p.example.com/"}

        assert base_url_for(config(), "personalization", environ=environ) == "https://p.example.com/"
        assert base_url_for(config(), "api", environ=environ) == "https://api.stream-io-api.com/api/"

    def test_override_beats_everything(self) -> None:
        cfg = config(
            location="us-east",
            local=True,
            url_override={"api": "https://override.example.com/"},
        )
        environ = {"STREAM_BASE_URL": "https://proxy.example.com/api/", "LOCAL": "1"}

        assert base_url_for(cfg, environ=environ) == "https://override.example.com/"

    @pytest.mark.parametrize(
        ("service", "key"),
        [("api", "STREAM_BASE_URL"), ("analytics", "STREAM_ANALYTICS_URL")],
    )
    def test_environment_key(self, service: str, key: str) -> None:
        assert environment_key(service) == key


class TestRequestEnricher:
    """Tests for RequestEnricher.enrich."""

    def test_enrich_url(self) -> None:
        enricher = RequestEnricher(config(version="v2.0"), lambda: None, environ={})

        assert enricher.enrich_url("feed/user/1/") == (
            "https://api.stream-io-api.com/api/v2.0/feed/user/1/"
        )

    def test_enrich_jwt_signature(self, server_config) -> None:
        token = "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.e30.c2ln"
        enricher = RequestEnricher(server_config, lambda: "unused", environ={})
        descriptor = RequestDescriptor(
            url="feed/user/1/",
            query={"limit": 10},
            body={"a": 1},
            signature=f"user1 {token}",
        )

        request = enricher.enrich("get", descriptor)

        assert request.method == "GET"
        assert request.auth_type is AuthType.JWT
        assert request.headers["stream-auth-type"] == "jwt"
        assert request.headers["Authorization"] == token
        assert request.headers["X-Stream-Client"] == user_agent(browser=False)
        assert request.params == {"limit": 10, "api_key": "test-api-key", "location": "unspecified"}
        assert request.body == {"a": 1}
        assert request.timeout == 10.0
        assert request.with_credentials is False

    def test_enrich_does_not_mutate_descriptor(self, server_config) -> None:
        enricher = RequestEnricher(server_config, lambda: "secret-ish", environ={})
        descriptor = RequestDescriptor(url="x/", query={"a": 1})

        enricher.enrich("POST", descriptor)

        assert descriptor.query == {"a": 1}
        assert descriptor.signature is None

    def test_ambient_signature_used_when_missing(self, server_config) -> None:
        enricher = RequestEnricher(server_config, lambda: "opaque", environ={})

        request = enricher.enrich("GET", RequestDescriptor(url="x/"))

        assert request.auth_type is AuthType.SIMPLE
        assert request.headers["stream-auth-type"] == "simple"
        assert request.headers["Authorization"] == "opaque"

    def test_group_is_sent_as_location(self) -> None:
        enricher = RequestEnricher(config(group="eu"), lambda: None, environ={})

        request = enricher.enrich("GET", RequestDescriptor(url="x/"))

        assert request.params["location"] == "eu"

    def test_service_name_selects_base_url(self) -> None:
        enricher = RequestEnricher(config(), lambda: None, environ={})

        request = enricher.enrich(
            "GET", RequestDescriptor(url="feed/", service_name="personalization")
        )

        assert request.url == (
            "https://personalization.stream-io-api.com/personalization/v1.0/feed/"
        )


class TestUserAgent:
    """Tests for the client identification header."""

    def test_runtime_marker(self) -> None:
        assert user_agent(browser=True).startswith("stream-python-client-browser-")
        assert user_agent(browser=False).startswith("stream-python-client-server-")
