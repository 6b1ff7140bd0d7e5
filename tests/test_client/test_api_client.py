"""Tests for awkgen.client.api_client.

Covers:
- expand_path escaping, case-insensitive placeholders, missing values
- Request building: base URL, query flattening, JSON and multipart bodies
- 429 handling: Retry-After seconds / HTTP date, exponential backoff,
  attempt limit
- ResponseEnvelope: trace id header precedence, JSON vs text payloads
- Network errors mapped to ConnectionError_
"""

from __future__ import annotations

import json

import httpx
import pytest

from awkgen.client.api_client import DEFAULT_BASE_URL, ApiClient, ResponseEnvelope
from awkgen.exceptions import ConnectionError_, InvalidUsageError
from awkgen.exit_codes import EXIT_CONNECTION_ERROR


def _client(handler, sleeps=None, **kwargs) -> ApiClient:
    sleep = sleeps.append if sleeps is not None else (lambda _: None)
    return ApiClient(
        "https://api.test/v1/",
        "secret",
        transport=httpx.MockTransport(handler),
        sleep=sleep,
        **kwargs,
    )


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"ok": True})


# ------------------------------------------------------------------ #
# Path expansion
# ------------------------------------------------------------------ #


class TestExpandPath:
    def test_substitutes_case_insensitively(self):
        path = ApiClient.expand_path("/users/{userId}/tags/{TagId}", {"userid": "u1", "tagId": 7})
        assert path == "/users/u1/tags/7"

    def test_escapes_values(self):
        assert ApiClient.expand_path("/files/{name}", {"name": "a/b c"}) == "/files/a%2Fb%20c"

    def test_bool_values(self):
        assert ApiClient.expand_path("/flags/{on}", {"on": True}) == "/flags/true"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_value(self, value):
        with pytest.raises(InvalidUsageError, match=r"Missing <userId>\."):
            ApiClient.expand_path("/users/{userId}", {"userId": value})


# ------------------------------------------------------------------ #
# Requests
# ------------------------------------------------------------------ #


class TestRequests:
    def test_base_url_and_auth(self):
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        _client(handler).call("GET", "/users")
        assert str(seen[0].url) == "https://api.test/v1/users"
        assert seen[0].headers["authorization"] == "Bearer secret"
        assert seen[0].headers["accept"] == "application/json"

    def test_no_token_no_auth_header(self):
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        ApiClient("https://api.test", transport=httpx.MockTransport(handler)).call("GET", "/x")
        assert "authorization" not in seen[0].headers

    def test_absolute_url_kept(self):
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        _client(handler).call("GET", "https://other.test/files/1")
        assert seen[0].url.host == "other.test"

    def test_query_flattening(self):
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        _client(handler).call(
            "get", "/tasks", query={"a": True, "b": ["x", None, "y"], "c": None, "d": 3}
        )
        assert seen[0].method == "GET"
        assert seen[0].url.params.multi_items() == [("a", "true"), ("b", "x"), ("b", "y"), ("d", "3")]

    def test_json_body(self):
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        _client(handler).call("POST", "/users", body={"firstName": "Zoë"})
        assert json.loads(seen[0].content.decode("utf-8")) == {"firstName": "Zoë"}
        assert seen[0].headers["content-type"] == "application/json"

    def test_custom_json_media_type(self):
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        _client(handler).call("PATCH", "/users/1", body=[], content_type="application/json-patch+json")
        assert seen[0].headers["content-type"] == "application/json-patch+json"
        assert seen[0].content == b"[]"

    def test_multipart_body(self):
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        _client(handler).call(
            "POST", "/files", body={"name": "a.txt", "meta": {"k": 1}, "skip": None},
            content_type="multipart/form-data",
        )
        content = seen[0].content
        assert seen[0].headers["content-type"].startswith("multipart/form-data; boundary=")
        assert b'name="name"' in content and b"a.txt" in content
        assert b'{"k": 1}' in content
        assert b'name="skip"' not in content

    def test_no_body(self):
        seen = []

        def handler(request):
            seen.append(request)
            return _ok(request)

        _client(handler).call("DELETE", "/users/1")
        assert seen[0].content == b""


# ------------------------------------------------------------------ #
# Rate limiting
# ------------------------------------------------------------------ #


def _limited_then_ok(limit_count, headers=None):
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        if calls["n"] <= limit_count:
            return httpx.Response(429, headers=headers or {}, json={"message": "slow down"})
        return httpx.Response(200, json={"ok": True})

    return handler, calls


class TestRateLimit:
    def test_retry_after_seconds(self):
        handler, calls = _limited_then_ok(1, {"Retry-After": "2"})
        sleeps: list[float] = []
        envelope = _client(handler, sleeps).call("GET", "/users")
        assert envelope.status_code == 200
        assert calls["n"] == 2
        assert sleeps == [2.0]

    def test_exponential_backoff_without_header(self):
        handler, calls = _limited_then_ok(2)
        sleeps: list[float] = []
        envelope = _client(handler, sleeps, max_attempts=3).call("GET", "/users")
        assert envelope.ok
        assert sleeps == [1.0, 2.0]

    def test_gives_up_after_max_attempts(self):
        handler, calls = _limited_then_ok(10)
        sleeps: list[float] = []
        envelope = _client(handler, sleeps, max_attempts=3).call("GET", "/users")
        assert envelope.status_code == 429
        assert calls["n"] == 3
        assert len(sleeps) == 2

    def test_single_attempt_never_sleeps(self):
        handler, calls = _limited_then_ok(10)
        sleeps: list[float] = []
        assert _client(handler, sleeps, max_attempts=0).call("GET", "/x").status_code == 429
        assert calls["n"] == 1
        assert sleeps == []

    def test_past_http_date_means_no_wait(self):
        headers = httpx.Headers({"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})
        assert ApiClient.retry_delay(headers, 1) == 0.0

    def test_backoff_is_capped(self):
        assert ApiClient.retry_delay(httpx.Headers(), 10) == 30.0

    def test_unparsable_header_falls_back(self):
        assert ApiClient.retry_delay(httpx.Headers({"Retry-After": "soon"}), 2) == 2.0


# ------------------------------------------------------------------ #
# Envelope
# ------------------------------------------------------------------ #


class TestEnvelope:
    def test_trace_header_precedence(self):
        def handler(request):
            return httpx.Response(200, headers={"request-id": "r", "traceparent": "t"})

        assert _client(handler).call("GET", "/x").trace_id == "t"

    def test_text_payload(self):
        def handler(request):
            return httpx.Response(500, text="Internal error")

        envelope = _client(handler).call("GET", "/x")
        assert envelope.response == "Internal error"
        assert not envelope.ok

    def test_empty_payload(self):
        def handler(request):
            return httpx.Response(204)

        envelope = _client(handler).call("DELETE", "/x")
        assert envelope.response is None
        assert envelope.ok

    def test_to_dict_uses_wire_keys(self):
        envelope = ResponseEnvelope(status_code=201, trace_id="abc", response={"id": 1})
        assert envelope.to_dict() == {"statusCode": 201, "traceId": "abc", "response": {"id": 1}}

    def test_from_error(self):
        assert ResponseEnvelope.from_error("boom").to_dict() == {
            "statusCode": 0,
            "traceId": None,
            "response": {"error": "boom"},
        }


# ------------------------------------------------------------------ #
# Errors and construction
# ------------------------------------------------------------------ #


class TestErrors:
    def test_connect_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ConnectionError_, match="failed") as exc_info:
            _client(handler).call("GET", "/x")
        assert exc_info.value.exit_code == EXIT_CONNECTION_ERROR

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ConnectionError_, match="timed out"):
            _client(handler).call("GET", "/x")


class TestConstruction:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("AWORK_BASE_URL", "https://env.test/api/")
        monkeypatch.setenv("AWORK_TOKEN", "t0k")
        client = ApiClient.from_env()
        assert client.base_url == "https://env.test/api"

    def test_from_env_defaults(self, monkeypatch):
        monkeypatch.delenv("AWORK_BASE_URL", raising=False)
        monkeypatch.delenv("AWORK_TOKEN", raising=False)
        assert ApiClient.from_env().base_url == DEFAULT_BASE_URL

    def test_context_manager_closes(self):
        with _client(_ok) as client:
            pass
        assert client._http.is_closed
