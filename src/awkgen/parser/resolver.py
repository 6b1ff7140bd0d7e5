"""On-demand ``$ref`` lookup, ``allOf`` merging, and schema classification.

Unlike a full inlining pass, :class:`SchemaResolver` leaves the spec
document untouched and answers questions about individual schema nodes:
what a ``$ref`` points to, which properties an ``allOf`` composition ends
up with, and whether a property is a scalar, an array, or an object.

Resolution is best effort. A ``$ref`` to a missing schema, or to an external
document, yields ``None`` and a debug log entry rather than an exception;
callers degrade to an untyped value. Cycles are cut with a ``seen`` set of
``$ref`` strings on the current resolution path.

Example::

    resolver = SchemaResolver(raw_spec)
    resolver.deref({"$ref": "#/components/schemas/Task"})   # the Task schema
    resolver.body_properties(request_schema)                # (BodyProperty, ...)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from awkgen.models import BodyProperty, BodyPropertyKind

logger = logging.getLogger(__name__)

_SCHEMA_REF_PREFIX = "#/components/schemas/"

_KIND_BY_TYPE = {
    "array": BodyPropertyKind.ARRAY,
    "object": BodyPropertyKind.OBJECT,
    "string": BodyPropertyKind.SCALAR,
    "integer": BodyPropertyKind.SCALAR,
    "number": BodyPropertyKind.SCALAR,
    "boolean": BodyPropertyKind.SCALAR,
}


def ref_name(ref: str) -> Optional[str]:
    """Schema name of a ``#/components/schemas/<name>`` reference, else ``None``."""
    if not ref.startswith(_SCHEMA_REF_PREFIX):
        return None
    name = ref[len(_SCHEMA_REF_PREFIX):].replace("~1", "/").replace("~0", "~")
    return name or None


class SchemaResolver:
    """Answer schema questions against one parsed spec document.

    Args:
        document: The raw OpenAPI document as returned by
            :func:`~awkgen.parser.loader.load_spec`.
    """

    def __init__(self, document: dict[str, Any]) -> None:
        self._document = document
        components = document.get("components")
        schemas = components.get("schemas") if isinstance(components, dict) else None
        self._schemas: dict[str, Any] = schemas if isinstance(schemas, dict) else {}

    @property
    def schemas(self) -> dict[str, Any]:
        """``components.schemas`` in document order (empty when absent)."""
        return self._schemas

    # ------------------------------------------------------------------ #
    # References
    # ------------------------------------------------------------------ #

    def resolve_pointer(self, ref: str) -> Optional[Any]:
        """Return the node an internal JSON pointer addresses, or ``None``.

        Handles RFC 6901 escaping (``~1`` for ``/``, ``~0`` for ``~``).
        """
        if not ref.startswith("#/"):
            logger.debug("Ignoring external $ref %s", ref)
            return None
        current: Any = self._document
        for segment in ref[2:].split("/"):
            segment = segment.replace("~1", "/").replace("~0", "~")
            if isinstance(current, dict) and segment in current:
                current = current[segment]
            elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
                current = current[int(segment)]
            else:
                logger.debug("Unresolvable $ref %s", ref)
                return None
        return current

    def deref(self, node: Any, seen: Optional[frozenset[str]] = None) -> Optional[dict[str, Any]]:
        """Follow a chain of ``$ref`` objects to a concrete mapping.

        Returns ``None`` for non-mappings, dangling references, and cycles.
        """
        seen = seen or frozenset()
        while isinstance(node, dict) and isinstance(node.get("$ref"), str):
            ref = node["$ref"]
            if ref in seen:
                return None
            seen = seen | {ref}
            node = self.resolve_pointer(ref)
        return node if isinstance(node, dict) else None

    # ------------------------------------------------------------------ #
    # Types
    # ------------------------------------------------------------------ #

    @staticmethod
    def schema_type(schema: dict[str, Any]) -> tuple[Optional[str], bool]:
        """Return ``(type, nullable)`` for *schema*.

        OpenAPI 3.1 type arrays such as ``["string", "null"]`` yield the first
        non-null entry with ``nullable=True``.
        """
        raw = schema.get("type")
        nullable = schema.get("nullable") is True
        if isinstance(raw, list):
            types = [t for t in raw if isinstance(t, str)]
            nullable = nullable or "null" in types
            non_null = [t for t in types if t != "null"]
            return (non_null[0] if non_null else None), nullable
        if isinstance(raw, str):
            return raw, nullable
        return None, nullable

    def merge_all_of(self, schema: dict[str, Any], seen: Optional[frozenset[str]] = None) -> dict[str, Any]:
        """Flatten ``allOf`` into one object schema.

        Properties of later parts override earlier ones; ``required`` lists
        are unioned. Keys of *schema* other than ``allOf`` are kept.
        """
        parts = schema.get("allOf")
        if not isinstance(parts, list):
            return schema
        properties: dict[str, Any] = {}
        required: list[str] = []
        for part in parts:
            resolved = self.deref(part, seen)
            if resolved is None:
                continue
            if isinstance(resolved.get("allOf"), list):
                resolved = self.merge_all_of(resolved, seen)
            props = resolved.get("properties")
            if isinstance(props, dict):
                properties.update(props)
            for name in resolved.get("required") or []:
                if isinstance(name, str) and name not in required:
                    required.append(name)
        merged = {k: v for k, v in schema.items() if k != "allOf"}
        merged.setdefault("type", "object")
        merged["properties"] = {**properties, **(merged.get("properties") or {})}
        merged["required"] = required + [
            r for r in merged.get("required") or [] if r not in required
        ]
        return merged

    def classify(self, schema: Any, seen: Optional[frozenset[str]] = None) -> BodyPropertyKind:
        """Classify a property schema as scalar, array, object, or unknown."""
        seen = seen or frozenset()
        if not isinstance(schema, dict):
            return BodyPropertyKind.UNKNOWN
        ref = schema.get("$ref")
        if isinstance(ref, str) and ref not in seen:
            target = self.resolve_pointer(ref)
            if isinstance(target, dict):
                return self.classify(target, seen | {ref})
        parts = schema.get("allOf")
        if isinstance(parts, list):
            for part in parts:
                kind = self.classify(part, seen)
                if kind != BodyPropertyKind.UNKNOWN:
                    return kind
        type_, _ = self.schema_type(schema)
        if type_ is not None:
            return _KIND_BY_TYPE.get(type_, BodyPropertyKind.UNKNOWN)
        if "enum" in schema:
            return BodyPropertyKind.SCALAR
        return BodyPropertyKind.UNKNOWN

    def body_properties(
        self, schema: Any, seen: Optional[frozenset[str]] = None
    ) -> tuple[BodyProperty, ...]:
        """Top-level properties of a request body schema.

        Follows ``$ref`` and merges ``allOf`` parts (later parts win on
        case-insensitive name clashes). Non-object schemas have none.
        """
        seen = seen or frozenset()
        if not isinstance(schema, dict):
            return ()
        ref = schema.get("$ref")
        if isinstance(ref, str) and ref not in seen:
            target = self.resolve_pointer(ref)
            if isinstance(target, dict):
                return self.body_properties(target, seen | {ref})

        parts = schema.get("allOf")
        if isinstance(parts, list):
            merged: dict[str, BodyProperty] = {}
            for part in parts:
                for prop in self.body_properties(part, seen):
                    merged.pop(prop.name.lower(), None)
                    merged[prop.name.lower()] = prop
            return tuple(merged.values())

        type_, _ = self.schema_type(schema)
        if type_ is not None and type_ != "object":
            return ()
        props = schema.get("properties")
        if not isinstance(props, dict):
            return ()
        required = {r.lower() for r in schema.get("required") or [] if isinstance(r, str)}
        return tuple(
            BodyProperty(
                name=name,
                kind=self.classify(prop_schema, seen),
                required=name.lower() in required,
            )
            for name, prop_schema in props.items()
        )
