"""Command naming -- turn REST operations into short kebab-case subcommands.

The namer reads the shape of an operation's path (literal vs ``{param}``
segments, nesting depth, plural resource nouns, action words such as
``setassignees``) together with its HTTP method and tag, then walks
:data:`NAMING_RULES` top to bottom. The first rule whose predicate accepts
the :class:`PathShape` supplies the name template.

Names are unique within a tag group. Collisions are resolved in a fixed
order, each step being one candidate generator tried against the names
already taken:

1. the base name as computed;
2. for base names shared by two or more operations, the second-to-last
   literal path segment as a prefix (applied to every sharer);
3. ``-<http-method>`` suffix;
4. the operation id without its verb, kebab-cased, as a suffix;
5. numeric suffixes from 2 upward.

Example::

    namer = CommandNamer()
    commands = namer.name_operations(operations)
    [c.command_name for c in commands]   # ['list', 'get', 'create', 'me', ...]
"""

from __future__ import annotations

import itertools
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional, Union

from awkgen.models import CommandDescriptor, HTTPMethod, OperationDescriptor
from awkgen.naming.identifiers import (
    IdentifierSanitizer,
    UniqueNames,
    is_path_param,
    normalize_kebab,
    param_name,
    path_segments,
)
from awkgen.naming.tables import DEFAULT_TABLES, NamingTables

logger = logging.getLogger(__name__)

_VERB_PREFIXES = ("Get", "Post", "Put", "Delete", "Patch")

FALLBACK_COMMAND_NAME = "command"


def strip_verb(operation_id: str) -> str:
    """Drop a leading ``Get``/``Post``/``Put``/``Delete``/``Patch`` (case-sensitive)."""
    for verb in _VERB_PREFIXES:
        if operation_id.startswith(verb):
            return operation_id[len(verb):]
    return operation_id


# ------------------------------------------------------------------ #
# Path shape
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class PathShape:
    """Everything the naming rules look at, computed once per operation.

    Template fields (usable as ``{name}`` in a rule template): ``resource``,
    ``raw_resource``, ``item``, ``parent``, ``action``, ``param``,
    ``entity``, ``first_segment`` and ``op_id``.
    """

    method: HTTPMethod
    segment_count: int
    literal_count: int
    last_is_param: bool
    is_current_entity: bool
    is_name_param: bool
    tag_matches: bool
    resource_is_plural: bool
    has_item_path: bool
    is_action: bool
    has_param_before_last: bool
    resource: str
    raw_resource: str
    item: str
    parent: str
    action: str
    param: str
    entity: str
    first_segment: str
    op_id: str

    @property
    def is_top_level(self) -> bool:
        return self.literal_count == 1

    @property
    def is_nested(self) -> bool:
        return self.literal_count > 1

    @property
    def is_single_segment(self) -> bool:
        return self.segment_count == 1

    def fields(self) -> dict[str, str]:
        return {
            "resource": self.resource,
            "raw_resource": self.raw_resource,
            "item": self.item,
            "parent": self.parent,
            "action": self.action,
            "param": self.param,
            "entity": self.entity,
            "first_segment": self.first_segment,
            "op_id": self.op_id,
        }


Template = Union[str, Callable[[PathShape], str]]


@dataclass(frozen=True)
class NamingRule:
    """One row of the decision table.

    Args:
        name: Rule identifier, reported in debug logs.
        methods: HTTP methods the rule applies to; ``None`` means any.
        predicate: Test on the :class:`PathShape`.
        template: ``str.format`` template over :meth:`PathShape.fields`, or
            a callable producing the name.
    """

    name: str
    methods: Optional[frozenset[HTTPMethod]]
    predicate: Callable[[PathShape], bool]
    template: Template

    def applies(self, shape: PathShape) -> bool:
        if self.methods is not None and shape.method not in self.methods:
            return False
        return self.predicate(shape)

    def render(self, shape: PathShape) -> str:
        if callable(self.template):
            return self.template(shape)
        return self.template.format(**shape.fields())


def _only(*methods: HTTPMethod) -> frozenset[HTTPMethod]:
    return frozenset(methods)


_GET = _only(HTTPMethod.GET)
_POST = _only(HTTPMethod.POST)
_PUT = _only(HTTPMethod.PUT)
_PATCH = _only(HTTPMethod.PATCH)
_DELETE = _only(HTTPMethod.DELETE)


def _always(shape: PathShape) -> bool:
    return True


def _item_untagged(shape: PathShape) -> bool:
    return shape.last_is_param and shape.is_top_level and not shape.tag_matches


def _nested_item(shape: PathShape) -> bool:
    return shape.last_is_param and shape.is_nested


def _put_item_or_single(shape: PathShape) -> bool:
    return shape.last_is_param or shape.is_single_segment


def _top_collection(shape: PathShape) -> bool:
    return not shape.last_is_param and shape.is_single_segment


def _nested_with_parent(shape: PathShape) -> bool:
    return shape.is_nested and shape.has_param_before_last and bool(shape.parent)


NAMING_RULES: tuple[NamingRule, ...] = (
    # --- any method ---
    NamingRule("empty-path", None, lambda s: s.segment_count == 0, "{op_id}"),
    NamingRule(
        "current-entity", None,
        lambda s: s.is_current_entity and s.is_single_segment, "{entity}",
    ),
    NamingRule(
        "nested-current-entity", None,
        lambda s: s.is_current_entity, "{first_segment}-{entity}",
    ),
    # --- GET ---
    NamingRule("get-by-name", _GET, lambda s: s.is_name_param, "get-by-{param}"),
    NamingRule("get-item-untagged", _GET, _item_untagged, "get-{item}"),
    NamingRule("get-nested-item", _GET, _nested_item, "get-{item}"),
    NamingRule("get", _GET, lambda s: s.last_is_param, "get"),
    NamingRule(
        "list", _GET,
        lambda s: _top_collection(s) and s.resource_is_plural and s.tag_matches, "list",
    ),
    NamingRule(
        "list-resource", _GET,
        lambda s: _top_collection(s) and s.resource_is_plural, "list-{resource}",
    ),
    NamingRule(
        "get-tag-resource", _GET,
        lambda s: _top_collection(s) and s.tag_matches, "get-{raw_resource}",
    ),
    NamingRule("get-resource", _GET, _top_collection, "get-{resource}"),
    NamingRule(
        "list-parent-resource", _GET,
        lambda s: _nested_with_parent(s) and s.resource_is_plural,
        "list-{parent}-{resource}",
    ),
    NamingRule(
        "list-nested", _GET,
        lambda s: s.is_nested and s.resource_is_plural, "list-{resource}",
    ),
    NamingRule(
        "list-collection", _GET,
        lambda s: s.is_nested and s.has_item_path, "list-{resource}",
    ),
    NamingRule("get-literal", _GET, _always, "get-{raw_resource}"),
    # --- POST ---
    NamingRule(
        "create", _POST, lambda s: s.is_single_segment and s.tag_matches, "create",
    ),
    NamingRule(
        "create-resource", _POST, lambda s: s.is_single_segment, "create-{resource}",
    ),
    NamingRule("post-action", _POST, lambda s: s.is_action, "{action}"),
    NamingRule("create-nested", _POST, lambda s: s.is_nested, "create-{resource}"),
    NamingRule("create-collection", _POST, lambda s: s.resource_is_plural, "create"),
    NamingRule("post-literal", _POST, _always, "{resource}"),
    # --- PUT ---
    NamingRule("put-action", _PUT, lambda s: s.is_action, "{action}"),
    NamingRule(
        "update-item-untagged", _PUT,
        lambda s: _put_item_or_single(s) and s.is_top_level and not s.tag_matches,
        "update-{item}",
    ),
    NamingRule(
        "update-nested-item", _PUT,
        lambda s: _put_item_or_single(s) and s.is_nested, "update-{item}",
    ),
    NamingRule("update", _PUT, _put_item_or_single, "update"),
    NamingRule("update-nested", _PUT, lambda s: s.is_nested, "update-{resource}"),
    NamingRule("put-literal", _PUT, _always, "{raw_resource}"),
    # --- PATCH ---
    NamingRule("patch-action", _PATCH, lambda s: s.is_action, "{action}"),
    NamingRule("patch-item-untagged", _PATCH, _item_untagged, "patch-{item}"),
    NamingRule("patch-nested-item", _PATCH, _nested_item, "patch-{item}"),
    NamingRule("patch", _PATCH, lambda s: s.last_is_param, "patch"),
    NamingRule("patch-nested", _PATCH, lambda s: s.is_nested, "patch-{resource}"),
    NamingRule("patch-literal", _PATCH, _always, "{raw_resource}"),
    # --- DELETE ---
    NamingRule("delete-item-untagged", _DELETE, _item_untagged, "delete-{item}"),
    NamingRule("delete-nested-item", _DELETE, _nested_item, "delete-{item}"),
    NamingRule("delete", _DELETE, lambda s: s.last_is_param, "delete"),
    NamingRule(
        "delete-parent-resource", _DELETE, _nested_with_parent,
        "delete-{parent}-{resource}",
    ),
    NamingRule("delete-nested", _DELETE, lambda s: s.is_nested, "delete-{resource}"),
    NamingRule(
        "delete-resource", _DELETE,
        lambda s: s.is_single_segment and not s.tag_matches, "delete-{resource}",
    ),
    NamingRule("delete-literal", _DELETE, _always, "delete-{raw_resource}"),
)
"""Decision table, evaluated top to bottom; the first applicable rule wins.

Methods without rows (HEAD, OPTIONS, TRACE) and rules rendering an empty
name fall through to the operation-id based name.
"""


# ------------------------------------------------------------------ #
# Namer
# ------------------------------------------------------------------ #


class CommandNamer:
    """Derive command names and handler identifiers for operations.

    Args:
        tables: Naming vocabulary. Defaults to :data:`DEFAULT_TABLES`.
        rules: Decision table. Defaults to :data:`NAMING_RULES`.
        sanitizer: Shared sanitizer; built from *tables* when omitted.
    """

    def __init__(
        self,
        tables: Optional[NamingTables] = None,
        rules: Iterable[NamingRule] = NAMING_RULES,
        sanitizer: Optional[IdentifierSanitizer] = None,
    ) -> None:
        self._tables = tables or DEFAULT_TABLES
        self._rules = tuple(rules)
        self._ids = sanitizer or IdentifierSanitizer(self._tables)

    @property
    def sanitizer(self) -> IdentifierSanitizer:
        return self._ids

    # --- Vocabulary helpers ---

    def normalize_segment(self, segment: str) -> str:
        """Expand a glued path segment into its hyphenated form.

        The alias table wins; otherwise a compound action prefix followed
        by a known resource is split (``addprojects`` -> ``add-projects``).
        Anything else is returned unchanged.
        """
        if not segment or not segment.strip():
            return segment
        alias = self._tables.alias_for_segment(segment)
        if alias is not None:
            return alias
        lower = segment.lower()
        for prefix in self._tables.compound_action_prefixes:
            if not lower.startswith(prefix):
                continue
            rest = lower[len(prefix):]
            if rest in self._tables.known_resources:
                return f"{prefix}-{rest}"
        return segment

    def is_plural(self, token: str) -> bool:
        if not token or not token.strip():
            return False
        if token.startswith(self._tables.non_plural_prefixes):
            return False
        lower = token.lower()
        return lower.endswith("s") or lower.endswith("items")

    def is_action(self, segment: str) -> bool:
        if not segment or not segment.strip():
            return False
        return segment.lower().startswith(self._tables.action_prefixes)

    @staticmethod
    def singularize(value: str) -> str:
        """Singularise the last hyphen-delimited token of *value*."""
        parts = [p for p in value.split("-") if p]
        if not parts:
            return value
        parts[-1] = _singularize_token(parts[-1])
        return "-".join(parts)

    def _resource_kebab(self, literal: str) -> str:
        return self._ids.to_kebab_case(self.normalize_segment(literal))

    def _action_parent(self, segments: list[str]) -> str:
        """Singular name of the literal just before the nearest earlier ``{param}``."""
        for i in range(len(segments) - 2, -1, -1):
            if not is_path_param(segments[i]):
                continue
            if i - 1 < 0 or is_path_param(segments[i - 1]):
                break
            return self.singularize(self._resource_kebab(segments[i - 1]))
        return ""

    @staticmethod
    def _action_with_parent(action: str, parent: str) -> str:
        """Insert *parent* into ``<verb>-<...tags>`` unless already present."""
        if not action or not parent:
            return action
        parts = [p for p in action.split("-") if p]
        if len(parts) < 2:
            return action
        verb, obj = parts[0], "-".join(parts[1:])
        if not obj.lower().endswith("tags"):
            return action
        if obj.lower().startswith(parent.lower() + "-"):
            return action
        return f"{verb}-{parent}-{obj}"

    # --- Shape ---

    @staticmethod
    def collection_paths_with_item(operations: Iterable[OperationDescriptor]) -> frozenset[str]:
        """Collection paths that also have a ``/{param}`` item sibling."""
        paths: set[str] = set()
        for op in operations:
            segments = op.segments
            if segments and is_path_param(segments[-1]):
                paths.add("/" + "/".join(segments[:-1]))
        return frozenset(paths)

    def shape(self, op: OperationDescriptor, collection_paths: frozenset[str]) -> PathShape:
        """Compute the :class:`PathShape` of *op*."""
        kebab = self._ids.to_kebab_case
        segments = path_segments(op.path_template)
        last = segments[-1] if segments else ""
        last_is_param = is_path_param(last)
        param = param_name(last) if last_is_param else ""
        literals = [s for s in segments if not is_path_param(s)]
        last_literal = literals[-1] if literals else ""
        normalized_last = self.normalize_segment(last_literal)
        resource = kebab(normalized_last)
        tag_name = kebab(self.normalize_segment(op.tag))
        parent_literal = literals[-2] if len(literals) > 1 else ""
        is_action = self.is_action(normalized_last)

        return PathShape(
            method=op.http_method,
            segment_count=len(segments),
            literal_count=len(literals),
            last_is_param=last_is_param,
            is_current_entity=bool(last) and self._tables.is_current_entity(last),
            is_name_param=bool(param) and self._tables.is_name_like_param(param),
            tag_matches=resource.lower() == (tag_name or "").lower(),
            resource_is_plural=self.is_plural(resource),
            has_item_path=op.path_template in collection_paths,
            is_action=is_action,
            has_param_before_last=any(is_path_param(s) for s in segments[:-1]),
            resource=resource,
            raw_resource=kebab(last_literal),
            item=self.singularize(resource) if self.is_plural(resource) else resource,
            parent=self.singularize(self._resource_kebab(parent_literal)) if parent_literal else "",
            action=(
                self._action_with_parent(resource, self._action_parent(segments))
                if is_action else resource
            ),
            param=kebab(param),
            entity=last.lower(),
            first_segment=kebab(segments[0]) if segments else "",
            op_id=kebab(op.operation_id),
        )

    # --- Naming ---

    def operation_id_name(self, op: OperationDescriptor) -> str:
        """Fallback name: the operation id without its verb and tag prefix."""
        trimmed = strip_verb(op.operation_id)
        trimmed = self._strip_tag_prefix(trimmed, op.tag)
        if not trimmed.strip():
            return self._ids.to_kebab_case(op.operation_id)
        return self._ids.to_kebab_case(trimmed)

    def _strip_tag_prefix(self, value: str, tag: str) -> str:
        if not value.strip() or not tag.strip():
            return value
        tag_pascal = self._ids.to_pascal_case(tag)
        if value.startswith(tag_pascal):
            return value[len(tag_pascal):]
        singular = tag_pascal[:-1] if tag_pascal.endswith("s") else tag_pascal
        if value.startswith(singular):
            return value[len(singular):]
        return value

    def name_for(self, op: OperationDescriptor, collection_paths: frozenset[str]) -> str:
        """Base command name for *op*, before collision resolution."""
        shape = self.shape(op, collection_paths)
        for rule in self._rules:
            if not rule.applies(shape):
                continue
            name = normalize_kebab(rule.render(shape))
            if name:
                logger.debug("%s %s -> %s (%s)", op.http_method.value.upper(),
                             op.path_template, name, rule.name)
                return name
            break
        return normalize_kebab(self.operation_id_name(op)) or FALLBACK_COMMAND_NAME

    def _parent_prefixed(self, name: str, op: OperationDescriptor) -> Optional[str]:
        literals = [s for s in op.segments if not is_path_param(s)]
        if len(literals) < 2:
            return None
        return normalize_kebab(f"{self._ids.to_kebab_case(literals[-2])}-{name}")

    def command_candidates(
        self, name: str, op: OperationDescriptor, prefixed: bool
    ) -> Iterator[str]:
        """Candidate names for *op* in resolution order; never exhausted."""
        yield name
        if not prefixed:
            alt = self._parent_prefixed(name, op)
            if alt:
                yield alt
        yield f"{name}-{op.http_method.value}"
        suffix = normalize_kebab(self._ids.to_kebab_case(strip_verb(op.operation_id)))
        if suffix:
            yield f"{name}-{suffix}"
        for counter in itertools.count(2):
            yield f"{name}-{counter}"

    def handler_candidates(self, op: OperationDescriptor) -> Iterator[str]:
        """Candidate handler identifiers, mirroring method-name resolution."""
        return method_name_candidates(self._ids, op.operation_id, op.path_template,
                                      op.http_method, self._tables)

    def resolve_group(
        self, operations: list[OperationDescriptor], base_names: list[str]
    ) -> list[str]:
        """Make *base_names* unique within one tag group.

        Args:
            operations: The group's operations, in collection order.
            base_names: One computed base name per operation.

        Returns:
            Final command names, aligned with *operations*.
        """
        shared = Counter(name for name in base_names)
        used = UniqueNames()
        names: list[str] = []
        for op, base in zip(operations, base_names):
            name, prefixed = base, False
            if shared[base] > 1:
                alt = self._parent_prefixed(base, op)
                if alt:
                    name, prefixed = alt, True
            names.append(used.claim(self.command_candidates(name, op, prefixed)))
        return names

    def name_operations(
        self,
        operations: list[OperationDescriptor],
        reserved_handlers: Iterable[str] = (),
    ) -> list[CommandDescriptor]:
        """Name every operation, grouped by tag in sorted tag order.

        Args:
            operations: All collected operations.
            reserved_handlers: Identifiers handler names must avoid, such
                as module-level names of the generated CLI.

        Returns:
            One :class:`CommandDescriptor` per operation.
        """
        collection_paths = self.collection_paths_with_item(operations)
        groups: dict[str, list[OperationDescriptor]] = {}
        for op in operations:
            groups.setdefault(op.tag, []).append(op)

        handlers = UniqueNames(reserved_handlers)
        commands: list[CommandDescriptor] = []
        for tag in sorted(groups, key=lambda t: (t.lower(), t)):
            group = groups[tag]
            base_names = [self.name_for(op, collection_paths) for op in group]
            for op, name in zip(group, self.resolve_group(group, base_names)):
                commands.append(
                    CommandDescriptor(
                        operation=op,
                        command_name=name,
                        class_name=handlers.claim(self.handler_candidates(op)),
                    )
                )
        return commands


def method_name_candidates(
    sanitizer: IdentifierSanitizer,
    operation_id: str,
    path: str,
    method: HTTPMethod,
    tables: NamingTables,
) -> Iterator[str]:
    """Identifier candidates for an operation, first free one wins.

    1. the sanitized operation id, plus the path-derived name when the id is
       a bare verb such as ``Get``;
    2. the first candidate plus path-derived name plus the upper-case method;
    3. that name with numeric suffixes from 2.
    """
    base = sanitizer.sanitize(operation_id)
    path_name = sanitizer.path_to_name(path)
    if base in tables.generic_operation_ids:
        base = sanitizer.sanitize(base + path_name)
    yield base
    qualified = sanitizer.sanitize(f"{base}{path_name}{method.value.upper()}")
    yield qualified
    for counter in itertools.count(2):
        yield f"{qualified}{counter}"


def _singularize_token(token: str) -> str:
    lower = token.lower()
    if lower.endswith("ies") and len(token) > 3:
        return token[:-3] + "y"
    if lower.endswith("ses") and len(token) > 3:
        return token[:-2]
    if lower.endswith("s") and not lower.endswith("ss") and len(token) > 1:
        return token[:-1]
    return token
