"""Read an OpenAPI document from a URL, a local file, or stdin.

JSON and YAML are both accepted. The format hint comes from the file
extension or the response ``Content-Type``; without a hint JSON is tried
first and YAML second.

The two public functions are:

* :func:`load_spec` -- fetch and parse a document from any supported source.
* :func:`validate_openapi_version` -- reject Swagger 2.x and anything that
  is not OpenAPI 3.x.

A successfully loaded document is not yet guaranteed to be *ready*: the
generation pipeline still checks for ``paths`` and ``components.schemas``
and quietly emits nothing when either is missing.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import httpx
import yaml

from awkgen.exceptions import SpecParseError

logger = logging.getLogger(__name__)

_JSON_SUFFIXES = (".json",)
_YAML_SUFFIXES = (".yaml", ".yml")


def load_spec(source: str, *, timeout: float = 30.0) -> dict[str, Any]:
    """Load an OpenAPI document.

    Args:
        source: An ``http(s)://`` URL, a file path, or ``-`` for stdin.
        timeout: Seconds to wait when *source* is a URL.

    Returns:
        The parsed document.

    Raises:
        SpecParseError: If the source cannot be read or parsed.
    """
    if source == "-":
        logger.debug("Reading spec from stdin")
        return _read_stdin()
    if source.startswith(("http://", "https://")):
        logger.debug("Fetching spec from %s", source)
        return _read_url(source, timeout)
    logger.debug("Reading spec file %s", source)
    return _read_file(Path(source))


def _read_stdin() -> dict[str, Any]:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read spec from stdin: {exc}") from exc
    if not content.strip():
        raise SpecParseError("No spec received on stdin")
    return parse_document(content)


def _read_url(url: str, timeout: float) -> dict[str, Any]:
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching spec from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch spec from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint: Optional[str] = None
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"
    return parse_document(response.text, hint=hint)


def _read_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise SpecParseError(f"Spec file not found: {path}")
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read spec file {path}: {exc}") from exc
    if not content.strip():
        raise SpecParseError(f"Spec file is empty: {path}")

    suffix = path.suffix.lower()
    hint: Optional[str] = None
    if suffix in _JSON_SUFFIXES:
        hint = "json"
    elif suffix in _YAML_SUFFIXES:
        hint = "yaml"
    return parse_document(content, hint=hint)


def parse_document(content: str, hint: Optional[str] = None) -> dict[str, Any]:
    """Parse *content* as a JSON or YAML mapping.

    A ``"json"`` hint disables the YAML fallback; a ``"yaml"`` hint skips
    JSON entirely.

    Raises:
        SpecParseError: If the text is not a mapping in either format.
    """
    errors: list[str] = []

    if hint != "yaml":
        try:
            return _require_mapping(json.loads(content))
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
            errors.append(f"JSON error: {exc}")

    try:
        return _require_mapping(yaml.safe_load(content))
    except yaml.YAMLError as exc:
        errors.append(f"YAML error: {exc}")

    raise SpecParseError("Failed to parse spec as JSON or YAML\n  " + "\n  ".join(errors))


def _require_mapping(value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        kind = "empty document" if value is None else type(value).__name__
        raise SpecParseError(f"Spec must be a JSON/YAML object (got {kind})")
    return value


def validate_openapi_version(document: dict[str, Any]) -> str:
    """Return the document's ``openapi`` version string.

    Raises:
        SpecParseError: For Swagger 2.x documents, a missing ``openapi``
            field, or a major version other than 3.
    """
    if "swagger" in document:
        raise SpecParseError(
            f"Swagger {document['swagger']} is not supported; "
            "convert the document to OpenAPI 3.x first."
        )
    version = document.get("openapi")
    if version is None:
        raise SpecParseError("Missing 'openapi' field. Is this an OpenAPI 3.x document?")
    version = str(version)
    if not version.startswith("3."):
        raise SpecParseError(
            f"Unsupported OpenAPI version: {version}. Only OpenAPI 3.x is supported."
        )
    return version
