"""Helpers shared by every generated CLI handler.

A generated handler collects its typer parameters, then calls into this
module to build the query map and the request body, and finally hands a
``client -> ResponseEnvelope`` callable to :func:`run`, which resolves the
client, prints the envelope as JSON on stdout, and sets the exit code.

Request bodies are assembled from three sources, applied in order:

1. ``--body`` -- a JSON document, or ``@path`` to read one from a file;
2. ``--set KEY=VALUE`` -- string values, with dotted keys building nested
   objects (``--set owner.name=Ada``);
3. ``--set-json KEY=JSON`` -- parsed JSON values, ``@path`` allowed.

Per-property options generated from the body schema are folded into the
``--set`` / ``--set-json`` lists before validation, so they obey the same
rules.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

import typer

from awkgen.client.api_client import ApiClient, ResponseEnvelope
from awkgen.exceptions import AwkgenError, ConfigError, InvalidUsageError
from awkgen.exit_codes import EXIT_GENERIC_FAILURE
from awkgen.output import print_json

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
# Values
# ------------------------------------------------------------------ #


def read_json(value: str, what: str = "--body") -> Any:
    """Parse *value* as JSON; ``@path`` reads the document from a file.

    Raises:
        InvalidUsageError: If the file is unreadable or the text is not JSON.
    """
    text = value
    if value.startswith("@"):
        path = Path(value[1:]).expanduser()
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise InvalidUsageError(f"Cannot read {what} file {path}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidUsageError(f"Invalid JSON for {what}: {exc}") from exc


def merge_pairs(*groups: Optional[Iterable[str]]) -> list[str]:
    """Concatenate ``KEY=VALUE`` lists, skipping ``None`` groups and blanks."""
    merged: list[str] = []
    for group in groups:
        merged.extend(pair for pair in group or () if pair and pair.strip())
    return merged


def option_pairs(fields: dict[str, Any]) -> tuple[list[str], list[str]]:
    """Turn body-property option values into ``--set`` / ``--set-json`` pairs.

    Scalars become ``--set`` pairs; lists become ``--set-json`` pairs with a
    JSON array. ``None`` and empty lists are dropped.
    """
    set_pairs: list[str] = []
    set_json_pairs: list[str] = []
    for name, value in fields.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            if value:
                set_json_pairs.append(f"{name}={json.dumps(list(value), ensure_ascii=False)}")
        else:
            set_pairs.append(f"{name}={value}")
    return set_pairs, set_json_pairs


def _split_pair(pair: str) -> tuple[str, str]:
    key, sep, value = pair.partition("=")
    key = key.strip()
    if not sep or not any(part for part in key.split(".")):
        raise InvalidUsageError(f"Invalid key/value '{pair}'. Use KEY=VALUE.")
    return key, value


def validate_body_keys(pairs: Iterable[str], allowed: Iterable[str]) -> None:
    """Reject pairs whose top-level key is not a known body field.

    Keys compare case-insensitively; only the part before the first ``.``
    is checked.

    Raises:
        InvalidUsageError: ``Unknown body field 'x'. Allowed: a, b.``
    """
    allowed = sorted(allowed)
    known = {name.lower() for name in allowed}
    for pair in pairs:
        key, _ = _split_pair(pair)
        top = next((part for part in key.split(".") if part), key)
        if top.lower() not in known:
            raise InvalidUsageError(
                f"Unknown body field '{top}'. Allowed: {', '.join(allowed)}."
            )


def _assign(target: dict[str, Any], key: str, value: Any) -> None:
    parts = [part for part in key.split(".") if part]
    node = target
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def build_body(
    raw: Optional[str],
    set_pairs: Iterable[str] = (),
    set_json_pairs: Iterable[str] = (),
) -> Any:
    """Assemble a request body from ``--body``, ``--set`` and ``--set-json``.

    Returns:
        The body, or ``None`` when no source supplied anything.

    Raises:
        InvalidUsageError: For malformed pairs or a non-object ``--body``
            combined with pairs.
    """
    body = read_json(raw) if raw is not None and raw.strip() else None
    set_pairs = list(set_pairs)
    set_json_pairs = list(set_json_pairs)
    if not set_pairs and not set_json_pairs:
        return body

    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise InvalidUsageError("--set and --set-json need --body to be a JSON object.")

    for pair in set_pairs:
        key, value = _split_pair(pair)
        _assign(body, key, value)
    for pair in set_json_pairs:
        key, value = _split_pair(pair)
        _assign(body, key, read_json(value.strip(), what=f"--set-json {key}"))
    return body


def body_from_options(
    raw: Optional[str],
    set_pairs: Optional[list[str]],
    set_json_pairs: Optional[list[str]],
    fields: dict[str, Any],
    *,
    allowed: Iterable[str] = (),
    required: bool = False,
) -> Any:
    """Everything a generated body-taking handler needs, in one call.

    Args:
        raw: ``--body`` value.
        set_pairs: ``--set`` values.
        set_json_pairs: ``--set-json`` values.
        fields: Body-property option values keyed by wire name.
        allowed: Known top-level body fields; empty disables the check.
        required: Whether the operation requires a body.

    Raises:
        InvalidUsageError: ``Body is required.`` or any validation error.
    """
    option_set, option_set_json = option_pairs(fields)
    merged_set = merge_pairs(set_pairs, option_set)
    merged_set_json = merge_pairs(set_json_pairs, option_set_json)
    allowed = list(allowed)
    if allowed:
        validate_body_keys(merged_set + merged_set_json, allowed)
    body = build_body(raw, merged_set, merged_set_json)
    if required and body is None:
        raise InvalidUsageError("Body is required.")
    return body


def query_from_options(values: dict[str, Any]) -> dict[str, Any]:
    """Drop unset (``None``, blank, or empty list) query options."""
    query: dict[str, Any] = {}
    for name, value in values.items():
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        if isinstance(value, (list, tuple)) and not value:
            continue
        query[name] = value
    return query


# ------------------------------------------------------------------ #
# Execution
# ------------------------------------------------------------------ #


def resolve_client(ctx: typer.Context) -> ApiClient:
    """Return the client stored on the root context.

    ``ctx.obj`` may hold a ready ``"client"`` or a ``"client_factory"``
    callable. The factory result is cached for the rest of the invocation
    and closed when the root context tears down.

    Raises:
        ConfigError: If neither is present.
    """
    obj = ctx.find_root().obj
    if not isinstance(obj, dict):
        raise ConfigError("No API client configured for this command.")
    client = obj.get("client")
    if client is None and callable(obj.get("client_factory")):
        client = ctx.find_root().with_resource(obj["client_factory"]())
        obj["client"] = client
    if client is None:
        raise ConfigError("No API client configured for this command.")
    return client


def run(ctx: typer.Context, call: Callable[[ApiClient], ResponseEnvelope]) -> None:
    """Execute *call*, print the envelope as JSON, and set the exit code.

    A non-2xx response exits 1. Client-side failures print an error
    envelope (``statusCode`` 0) and exit with the error's code.
    """
    try:
        envelope = call(resolve_client(ctx))
    except AwkgenError as exc:
        logger.debug("Command failed before a response: %s", exc)
        print_json(ResponseEnvelope.from_error(str(exc)).to_dict())
        raise typer.Exit(code=exc.exit_code) from exc

    print_json(envelope.to_dict())
    if not envelope.ok:
        raise typer.Exit(code=EXIT_GENERIC_FAILURE)
