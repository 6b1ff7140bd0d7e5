"""Runtime HTTP client that generated clients subclass.

A generated ``AworkClient`` adds one method per API operation; each method
expands its path template and funnels into :meth:`ApiClient.call`, which
owns the wire details:

- **Rate limits** -- HTTP 429 is retried up to ``max_attempts`` times,
  waiting for ``Retry-After`` (seconds or an HTTP date) or, without that
  header, ``min(30, 2 ** (attempt - 1))`` seconds.
- **Bodies** -- JSON by default; ``multipart/form-data`` operations send the
  body's top-level fields as form fields.
- **Query strings** -- booleans render as ``true``/``false`` and list values
  repeat the key.
- **Envelope** -- every call returns a :class:`ResponseEnvelope` carrying
  the status code, a trace id taken from the first of ``trace-id``,
  ``traceparent``, ``x-correlation-id`` or ``request-id``, and the decoded
  payload (JSON when possible, else raw text).

Non-2xx responses are *not* raised; callers inspect ``status_code``.
Network failures raise :class:`~awkgen.exceptions.ConnectionError_`.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field

from awkgen.exceptions import ConnectionError_, InvalidUsageError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.awork.com/api/v1"

TRACE_HEADERS = ("trace-id", "traceparent", "x-correlation-id", "request-id")

MAX_BACKOFF_SECONDS = 30.0

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")

RESERVED_ATTRIBUTES = frozenset({
    "__init__",
    "__enter__",
    "__exit__",
    "base_url",
    "call",
    "close",
    "expand_path",
    "from_env",
    "max_attempts",
    "retry_delay",
})
"""Names a generated subclass must not define as operation methods."""


class ResponseEnvelope(BaseModel):
    """Status, trace id, and payload of one API call.

    Serialises with the camelCase keys ``statusCode``, ``traceId`` and
    ``response``. ``status_code`` is ``0`` for envelopes describing a
    client-side error that never reached the API.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status_code: int = Field(alias="statusCode")
    trace_id: Optional[str] = Field(default=None, alias="traceId")
    response: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_error(cls, message: str) -> ResponseEnvelope:
        return cls(status_code=0, trace_id=None, response={"error": message})


class ApiClient:
    """Blocking client for one API base URL.

    Args:
        base_url: API root; a trailing ``/`` is ignored.
        token: Bearer token sent as ``Authorization``.
        timeout: Per-request timeout in seconds.
        max_attempts: Total tries for a rate-limited request.
        transport: Optional :mod:`httpx` transport (tests pass a
            :class:`httpx.MockTransport`).
        sleep: Delay function, replaceable in tests.

    Example::

        with AworkClient("https://api.awork.com/api/v1", token) as client:
            envelope = client.GetMe()
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        *,
        timeout: float = 30.0,
        max_attempts: int = 3,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max(1, max_attempts)
        self._sleep = sleep
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.Client(
            headers=headers,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    @classmethod
    def from_env(cls, prefix: str = "AWORK", **kwargs: Any) -> ApiClient:
        """Build a client from ``<prefix>_BASE_URL`` and ``<prefix>_TOKEN``."""
        return cls(
            os.environ.get(f"{prefix}_BASE_URL") or DEFAULT_BASE_URL,
            os.environ.get(f"{prefix}_TOKEN"),
            **kwargs,
        )

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------------------------------ #
    # Request pipeline
    # ------------------------------------------------------------------ #

    @staticmethod
    def expand_path(template: str, values: dict[str, Any]) -> str:
        """Substitute ``{placeholder}`` segments with escaped *values*.

        Placeholders match keys case-insensitively.

        Raises:
            InvalidUsageError: If a placeholder has no value.
        """
        by_name = {k.lower(): v for k, v in values.items()}

        def _replace(match: re.Match[str]) -> str:
            value = by_name.get(match.group(1).lower())
            if value is None or (isinstance(value, str) and not value.strip()):
                raise InvalidUsageError(f"Missing <{match.group(1)}>.")
            return quote(_format_value(value), safe="")

        return _PLACEHOLDER_RE.sub(_replace, template)

    def call(
        self,
        method: str,
        path: str,
        query: Optional[dict[str, Any]] = None,
        body: Any = None,
        content_type: Optional[str] = None,
    ) -> ResponseEnvelope:
        """Send one request, retrying on HTTP 429, and wrap the response.

        Raises:
            ConnectionError_: On network errors and timeouts.
        """
        url = path if path.lower().startswith(("http://", "https://")) else self.base_url + path
        params = _query_pairs(query)
        kwargs = _body_kwargs(body, content_type)

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self._http.request(method.upper(), url, params=params, **kwargs)
            except httpx.TimeoutException as exc:
                raise ConnectionError_(f"Request to {url} timed out: {exc}") from exc
            except httpx.TransportError as exc:
                raise ConnectionError_(f"Request to {url} failed: {exc}") from exc

            if response.status_code != 429 or attempt == self.max_attempts:
                return _envelope(response)

            delay = self.retry_delay(response.headers, attempt)
            logger.debug(
                "Rate limited on %s %s, retrying in %.1fs (attempt %d/%d)",
                method.upper(), path, delay, attempt, self.max_attempts,
            )
            if delay > 0:
                self._sleep(delay)

        raise AssertionError("unreachable: the last attempt always returns")

    @staticmethod
    def retry_delay(headers: httpx.Headers, attempt: int) -> float:
        """Seconds to wait before retry *attempt* + 1."""
        retry_after = headers.get("retry-after")
        if retry_after:
            retry_after = retry_after.strip()
            try:
                return max(0.0, float(retry_after))
            except ValueError:
                pass
            try:
                when = parsedate_to_datetime(retry_after)
            except (TypeError, ValueError):
                when = None
            if when is not None:
                if when.tzinfo is None:
                    when = when.replace(tzinfo=timezone.utc)
                return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())
        return min(MAX_BACKOFF_SECONDS, float(2 ** (attempt - 1)))


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _query_pairs(query: Optional[dict[str, Any]]) -> list[tuple[str, str]]:
    """Flatten *query* into ordered pairs; ``None`` values are dropped."""
    pairs: list[tuple[str, str]] = []
    for key, value in (query or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple, set)):
            pairs.extend((key, _format_value(item)) for item in value if item is not None)
        else:
            pairs.append((key, _format_value(value)))
    return pairs


def _body_kwargs(body: Any, content_type: Optional[str]) -> dict[str, Any]:
    if body is None:
        return {}
    media_type = content_type or "application/json"
    if media_type.lower() == "multipart/form-data":
        fields = body if isinstance(body, dict) else {"value": body}
        files = {
            key: (None, value if isinstance(value, str) else json.dumps(value))
            for key, value in fields.items()
            if value is not None
        }
        return {"files": files}
    return {
        "content": json.dumps(body, ensure_ascii=False).encode("utf-8"),
        "headers": {"Content-Type": media_type},
    }


def _envelope(response: httpx.Response) -> ResponseEnvelope:
    trace_id = next(
        (response.headers[name] for name in TRACE_HEADERS if name in response.headers),
        None,
    )
    payload: Any = None
    raw = response.text
    if raw.strip():
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            payload = raw
    return ResponseEnvelope(status_code=response.status_code, trace_id=trace_id, response=payload)
