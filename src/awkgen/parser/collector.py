"""Walk a spec's paths and build one :class:`OperationDescriptor` per operation.

For every path and every HTTP-verb key under it, :class:`OperationCollector`
extracts the first tag, the merged path and query parameters, and the
request body shape, then assigns a client method name that is unique
across the whole operation set.

Operations without an ``operationId`` are skipped. So is a route ending in a
current-entity alias (``/users/me``) when the bare alias path (``/me``)
exists as well: both address the same resource and would only produce
duplicate commands.

Example::

    resolver = SchemaResolver(raw)
    operations = OperationCollector(resolver).collect(raw["paths"])
    operations[0].generated_method_name   # 'GetUsers'
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from awkgen.models import (
    HTTPMethod,
    OperationDescriptor,
    ParameterDescriptor,
    ParameterLocation,
)
from awkgen.naming.commands import method_name_candidates
from awkgen.naming.identifiers import IdentifierSanitizer, UniqueNames, path_segments
from awkgen.naming.tables import DEFAULT_TABLES, NamingTables
from awkgen.parser.resolver import SchemaResolver

logger = logging.getLogger(__name__)

_HTTP_METHODS = {m.value for m in HTTPMethod}

_KEPT_LOCATIONS = {loc.value for loc in ParameterLocation}

DEFAULT_CONTENT_TYPE = "application/json"


class OperationCollector:
    """Build :class:`OperationDescriptor` objects from a spec's ``paths``.

    Args:
        resolver: Schema lookups for ``$ref`` parameters and request bodies.
        tables: Naming vocabulary (fallback tag, generic ids, current-entity
            aliases).
        sanitizer: Shared sanitizer; built from *tables* when omitted.
        reserved_method_names: Names the client class already owns; method
            names never take them.
    """

    def __init__(
        self,
        resolver: SchemaResolver,
        tables: Optional[NamingTables] = None,
        sanitizer: Optional[IdentifierSanitizer] = None,
        reserved_method_names: Iterable[str] = (),
    ) -> None:
        self._resolver = resolver
        self._reserved = tuple(reserved_method_names)
        self._tables = tables or DEFAULT_TABLES
        self._ids = sanitizer or IdentifierSanitizer(self._tables)

    def collect(self, paths: Any) -> list[OperationDescriptor]:
        """Return descriptors for every operation in *paths*, in document order."""
        if not isinstance(paths, dict):
            return []

        known_paths = {p.lower() for p in paths}
        used = UniqueNames(self._reserved)
        operations: list[OperationDescriptor] = []

        for path, path_item in paths.items():
            if not isinstance(path_item, dict):
                continue
            if self._is_shadowed_alias(path, known_paths):
                logger.debug("Dropping %s: covered by the bare alias path", path)
                continue

            for method, operation in path_item.items():
                if method.lower().startswith("x-") or method.lower() not in _HTTP_METHODS:
                    continue
                if not isinstance(operation, dict):
                    continue
                operation_id = operation.get("operationId")
                if not isinstance(operation_id, str) or not operation_id.strip():
                    logger.debug("Skipping %s %s: no operationId", method.upper(), path)
                    continue

                http_method = HTTPMethod(method.lower())
                has_body, body_required, content_type, body_schema = self._request_body(operation)
                summary = operation.get("summary")
                operations.append(
                    OperationDescriptor(
                        tag=self._first_tag(operation),
                        http_method=http_method,
                        path_template=path,
                        operation_id=operation_id,
                        generated_method_name=used.claim(
                            method_name_candidates(
                                self._ids, operation_id, path, http_method, self._tables
                            )
                        ),
                        summary=summary if isinstance(summary, str) else None,
                        parameters=tuple(self._parameters(path, path_item, operation)),
                        has_request_body=has_body,
                        request_body_required=body_required,
                        request_content_type=content_type,
                        body_properties=self._resolver.body_properties(body_schema),
                    )
                )
        return operations

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _is_shadowed_alias(self, path: str, known_paths: set[str]) -> bool:
        segments = path_segments(path)
        if len(segments) < 2 or not self._tables.is_current_entity(segments[-1]):
            return False
        return f"/{segments[-1]}".lower() in known_paths

    def _first_tag(self, operation: dict[str, Any]) -> str:
        tags = operation.get("tags")
        if isinstance(tags, list):
            for tag in tags:
                if isinstance(tag, str) and tag.strip():
                    return tag
        return self._tables.fallback_tag

    def _parameters(
        self, path: str, path_item: dict[str, Any], operation: dict[str, Any]
    ) -> list[ParameterDescriptor]:
        """Merge path-level and operation-level parameters.

        Operation-level declarations override path-level ones with the same
        ``(name, in)``. Placeholders without a declaration are synthesized
        as required, non-array path parameters.
        """
        merged: dict[tuple[str, str], ParameterDescriptor] = {}
        for source in (path_item.get("parameters"), operation.get("parameters")):
            for param in self._read_parameters(source):
                merged[(param.name, param.location.value)] = param

        params = list(merged.values())
        declared_path = {
            p.name.lower() for p in params if p.location == ParameterLocation.PATH
        }
        for segment in path_segments(path):
            if not (segment.startswith("{") and segment.endswith("}")):
                continue
            name = segment[1:-1]
            if name.lower() in declared_path:
                continue
            declared_path.add(name.lower())
            params.append(
                ParameterDescriptor(name=name, location=ParameterLocation.PATH, required=True)
            )
        return params

    def _read_parameters(self, source: Any) -> list[ParameterDescriptor]:
        if not isinstance(source, list):
            return []
        result: list[ParameterDescriptor] = []
        for raw in source:
            param = self._resolver.deref(raw)
            if param is None:
                continue
            name, location = param.get("name"), param.get("in")
            if not isinstance(name, str) or not name.strip():
                continue
            if not isinstance(location, str) or location.lower() not in _KEPT_LOCATIONS:
                continue
            schema = self._resolver.deref(param.get("schema")) or {}
            schema_type, _ = self._resolver.schema_type(schema)
            description = param.get("description")
            result.append(
                ParameterDescriptor(
                    name=name,
                    location=ParameterLocation(location.lower()),
                    required=param.get("required") is True,
                    is_array=(schema_type or "").lower() == "array",
                    description=description if isinstance(description, str) else None,
                )
            )
        return result

    def _request_body(self, operation: dict[str, Any]) -> tuple[bool, bool, str, Any]:
        """Return ``(has_body, required, content_type, schema)``.

        The content type is the first declared media type.
        """
        if "requestBody" not in operation:
            return False, False, DEFAULT_CONTENT_TYPE, None
        body = self._resolver.deref(operation["requestBody"]) or {}
        required = body.get("required") is True
        content = body.get("content")
        if not isinstance(content, dict) or not content:
            return True, required, DEFAULT_CONTENT_TYPE, None
        content_type, media = next(iter(content.items()))
        schema = media.get("schema") if isinstance(media, dict) else None
        return True, required, content_type, schema
