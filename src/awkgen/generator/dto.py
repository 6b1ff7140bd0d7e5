"""DTO emitter -- one pydantic model per ``components.schemas`` entry.

Object schemas (``type: object``, ``properties``, or ``allOf``) become
models with one field per property. Every field keeps its wire name as a
pydantic alias, so payloads round-trip unchanged while attribute names are
snake_case. Schemas that are not objects (enums, strings, arrays) become a
model with a single ``value`` field.

Type mapping is best effort. A ``$ref`` that cannot be resolved degrades to
``typing.Any`` instead of failing, because a missing type never changes the
set of generated commands.

Example::

    emitter = DtoEmitter(SchemaResolver(raw))
    source = emitter.render()    # text of dtos.py
"""

from __future__ import annotations

import itertools
import keyword
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional

import pydantic

from awkgen.generator.render import docstring, render
from awkgen.naming.identifiers import IdentifierSanitizer, UniqueNames
from awkgen.parser.resolver import SchemaResolver, ref_name

logger = logging.getLogger(__name__)

MODULE_IMPORTS = ("datetime", "decimal", "typing", "uuid", "pydantic")
"""Modules the generated file imports; no class or field may shadow them."""

ANY = "typing.Any"

_STRING_FORMATS = {
    "date-time": "datetime.datetime",
    "date": "datetime.date",
    "uuid": "uuid.UUID",
    "byte": "bytes",
    "binary": "bytes",
}

_BUILTIN_TYPES = ("bool", "bytes", "dict", "float", "int", "list", "str")

_RESERVED_FIELDS = frozenset(
    set(dir(pydantic.BaseModel)) | set(MODULE_IMPORTS) | set(_BUILTIN_TYPES)
)


@dataclass(frozen=True)
class DtoField:
    name: str
    alias: str
    annotation: str
    required: bool

    @property
    def declaration(self) -> str:
        """The ``name: annotation = default`` line body."""
        kwargs: list[str] = []
        if not self.required:
            kwargs.append("default=None")
        if self.alias != self.name:
            kwargs.append(f"alias={self.alias!r}")
        annotation = self.annotation
        if not self.required and annotation != ANY and not annotation.startswith("typing.Optional["):
            annotation = f"typing.Optional[{annotation}]"
        if not kwargs:
            return f"{self.name}: {annotation}"
        if kwargs == ["default=None"]:
            return f"{self.name}: {annotation} = None"
        return f"{self.name}: {annotation} = pydantic.Field({', '.join(kwargs)})"


@dataclass(frozen=True)
class DtoModel:
    class_name: str
    schema_name: str
    description: str
    fields: tuple[DtoField, ...]
    is_wrapper: bool = False


class DtoEmitter:
    """Build and render the DTO module for one spec document.

    Args:
        resolver: Schema access for the document.
        sanitizer: Identifier helper shared with the rest of the pass.
    """

    def __init__(
        self,
        resolver: SchemaResolver,
        sanitizer: Optional[IdentifierSanitizer] = None,
    ) -> None:
        self._resolver = resolver
        self._ids = sanitizer or IdentifierSanitizer()
        self._class_names = self._assign_class_names()

    # ------------------------------------------------------------------ #
    # Names
    # ------------------------------------------------------------------ #

    def _assign_class_names(self) -> dict[str, str]:
        used = UniqueNames(MODULE_IMPORTS)
        names: dict[str, str] = {}
        for schema_name in self._resolver.schemas:
            base = self._ids.sanitize(self._ids.to_pascal_case(schema_name))
            if base.startswith("_"):
                base = "Model" + base.lstrip("_")
            names[schema_name] = used.claim(_numbered(base))
        return names

    @property
    def class_names(self) -> dict[str, str]:
        """Schema name -> generated class name."""
        return dict(self._class_names)

    def field_name(self, prop_name: str) -> str:
        """snake_case attribute for a wire property name, before de-duplication."""
        snake = "".join(
            ch for ch in self._ids.to_snake_case(prop_name) if ch.isascii() and (ch.isalnum() or ch == "_")
        ).strip("_")
        if not snake:
            return "field"
        if snake[0].isdigit():
            snake = "f_" + snake
        if keyword.iskeyword(snake) or snake in _RESERVED_FIELDS:
            snake += "_"
        return snake

    # ------------------------------------------------------------------ #
    # Types
    # ------------------------------------------------------------------ #

    def is_object_schema(self, schema: Any) -> bool:
        if not isinstance(schema, dict):
            return False
        type_, _ = self._resolver.schema_type(schema)
        if type_ is not None:
            return type_ == "object"
        return isinstance(schema.get("properties"), dict) or isinstance(schema.get("allOf"), list)

    def annotation(self, schema: Any, seen: frozenset[str] = frozenset()) -> str:
        """Python annotation text for *schema*."""
        if not isinstance(schema, dict):
            return ANY
        ref = schema.get("$ref")
        if isinstance(ref, str):
            return self._ref_annotation(ref, seen)

        parts = schema.get("allOf")
        if isinstance(parts, list):
            if len(parts) == 1:
                return self._nullable(self.annotation(parts[0], seen), schema)
            return self._nullable("dict[str, typing.Any]", schema)
        if "oneOf" in schema or "anyOf" in schema:
            return ANY

        type_, nullable = self._resolver.schema_type(schema)
        if type_ == "string":
            result = _STRING_FORMATS.get(schema.get("format", ""), "str")
        elif type_ == "integer":
            result = "int"
        elif type_ == "number":
            result = "decimal.Decimal" if schema.get("format") == "decimal" else "float"
        elif type_ == "boolean":
            result = "bool"
        elif type_ == "array":
            result = f"list[{self.annotation(schema.get('items'), seen)}]"
        elif type_ == "object" or isinstance(schema.get("properties"), dict):
            extra = schema.get("additionalProperties")
            if isinstance(extra, dict):
                result = f"dict[str, {self.annotation(extra, seen)}]"
            else:
                result = "dict[str, typing.Any]"
        elif "enum" in schema:
            result = "str"
        else:
            return ANY
        return f"typing.Optional[{result}]" if nullable else result

    def _ref_annotation(self, ref: str, seen: frozenset[str]) -> str:
        name = ref_name(ref)
        if name is None or name not in self._class_names:
            logger.debug("Unresolved schema reference %s, typing as Any", ref)
            return ANY
        target = self._resolver.schemas.get(name)
        if self.is_object_schema(target):
            return self._class_names[name]
        # non-object schemas are inlined so payloads keep their wire shape
        if ref in seen:
            return ANY
        return self.annotation(target, seen | {ref})

    @staticmethod
    def _nullable(annotation: str, schema: dict[str, Any]) -> str:
        if schema.get("nullable") is True and annotation != ANY:
            return f"typing.Optional[{annotation}]"
        return annotation

    # ------------------------------------------------------------------ #
    # Models
    # ------------------------------------------------------------------ #

    def build_models(self) -> list[DtoModel]:
        """One :class:`DtoModel` per schema, in document order."""
        models: list[DtoModel] = []
        for schema_name, raw in self._resolver.schemas.items():
            schema = self._resolver.deref(raw) or {}
            class_name = self._class_names[schema_name]
            description = docstring(schema.get("description"), fallback=f"Schema ``{schema_name}``.")
            if self.is_object_schema(schema):
                models.append(
                    DtoModel(
                        class_name=class_name,
                        schema_name=schema_name,
                        description=description,
                        fields=tuple(self._fields(schema)),
                    )
                )
            else:
                value = DtoField(
                    name="value",
                    alias="value",
                    annotation=self.annotation(schema, frozenset({f"#/components/schemas/{schema_name}"})),
                    required=True,
                )
                models.append(
                    DtoModel(
                        class_name=class_name,
                        schema_name=schema_name,
                        description=description,
                        fields=(value,),
                        is_wrapper=True,
                    )
                )
        return models

    def _fields(self, schema: dict[str, Any]) -> Iterator[DtoField]:
        merged = self._resolver.merge_all_of(schema)
        properties = merged.get("properties")
        if not isinstance(properties, dict):
            return
        required = {r for r in merged.get("required") or [] if isinstance(r, str)}
        used = UniqueNames()
        for prop_name, prop_schema in properties.items():
            name = used.claim(_numbered(self.field_name(prop_name), sep="_"))
            yield DtoField(
                name=name,
                alias=prop_name,
                annotation=self.annotation(prop_schema),
                required=prop_name in required,
            )

    def render(self) -> str:
        """Source text of ``dtos.py``."""
        return render("dtos.py.j2", models=self.build_models())


def _numbered(base: str, sep: str = "") -> Iterator[str]:
    yield base
    for counter in itertools.count(2):
        yield f"{base}{sep}{counter}"
