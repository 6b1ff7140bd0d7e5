"""Canonical Pydantic models shared across all awkgen modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Configuration models** -- loaded from ``awkgen.json``, environment
variables, and CLI flags:
    :class:`GeneratorSettings`.

**Descriptor models** -- produced during one generation pass and consumed by
the emitters:
    :class:`HTTPMethod`, :class:`ParameterLocation`, :class:`BodyPropertyKind`,
    :class:`Domain`, :class:`ParameterDescriptor`, :class:`BodyProperty`,
    :class:`OperationDescriptor`, :class:`CommandDescriptor`, and
    :class:`TagGroupInfo`.

Descriptors are frozen: they are built once from the spec document and never
mutated afterwards. The naming tables live in :mod:`awkgen.naming.tables`.
"""

from __future__ import annotations

import enum
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Settings ---


class GeneratorSettings(BaseModel):
    """Effective settings for one ``awkgen generate`` run.

    Resolved by :func:`~awkgen.config.resolve_settings` from CLI flags,
    ``AWKGEN_*`` environment variables, the project-local ``awkgen.json``,
    and these defaults, in that order of precedence.
    """

    model_config = ConfigDict(extra="forbid")

    spec: Optional[str] = Field(
        default=None, description="URL, file path, or '-' for the OpenAPI document"
    )
    output_dir: str = Field(
        default="generated", description="Directory receiving the generated modules"
    )
    tables: Optional[str] = Field(
        default=None, description="JSON/YAML file overriding the default naming tables"
    )
    client_class: str = Field(
        default="AworkClient", description="Class name of the generated HTTP client"
    )


# --- Descriptor Models ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI 3.x path-item objects."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    HEAD = "head"
    OPTIONS = "options"
    TRACE = "trace"


class ParameterLocation(str, enum.Enum):
    """Parameter locations the generator keeps. Header and cookie parameters are dropped."""

    PATH = "path"
    QUERY = "query"


class BodyPropertyKind(str, enum.Enum):
    """Shape of a top-level request body property, used to pick CLI option types."""

    SCALAR = "scalar"
    ARRAY = "array"
    OBJECT = "object"
    UNKNOWN = "unknown"


class Domain(str, enum.Enum):
    """Closed set of top-level CLI branches.

    ``AUTH`` is registered through its own entry point and never appears in
    the main tree. ``UNMAPPED`` is the sentinel for tags missing from the
    naming tables; emitting a command under it is a hard error.
    """

    USERS = "users"
    TASKS = "tasks"
    PROJECTS = "projects"
    TIMES = "times"
    WORKSPACE = "workspace"
    DOCUMENTS = "documents"
    FILES = "files"
    SEARCH = "search"
    INTEGRATIONS = "integrations"
    AUTOMATION = "automation"
    AUTH = "auth"
    UNMAPPED = "unmapped"


class ParameterDescriptor(BaseModel):
    """A path or query parameter of an operation.

    Path parameters become positional arguments of the generated command;
    query parameters become ``--kebab-case`` options.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    location: ParameterLocation
    required: bool = False
    is_array: bool = False
    description: Optional[str] = None


class BodyProperty(BaseModel):
    """A top-level property of an operation's request body schema."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: BodyPropertyKind = BodyPropertyKind.UNKNOWN
    required: bool = False


_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")


class OperationDescriptor(BaseModel):
    """One ``(path, HTTP method)`` pair of the spec that carries an operation id.

    Built by :class:`~awkgen.parser.collector.OperationCollector`.
    ``generated_method_name`` is unique across the whole operation set and
    names the method on the generated client.
    """

    model_config = ConfigDict(frozen=True)

    tag: str
    http_method: HTTPMethod
    path_template: str
    operation_id: str
    generated_method_name: str
    summary: Optional[str] = None
    parameters: tuple[ParameterDescriptor, ...] = ()
    has_request_body: bool = False
    request_body_required: bool = False
    request_content_type: str = "application/json"
    body_properties: tuple[BodyProperty, ...] = ()

    @property
    def segments(self) -> list[str]:
        """Non-empty ``/``-separated segments of the path template."""
        return [s for s in self.path_template.split("/") if s]

    @property
    def path_placeholders(self) -> list[str]:
        """Placeholder names in left-to-right template order."""
        return _PLACEHOLDER_RE.findall(self.path_template)

    @property
    def path_parameters(self) -> list[ParameterDescriptor]:
        """Path parameters ordered by their position in the path template.

        Declarations not referenced by the template are appended in their
        declared order.
        """
        declared = [p for p in self.parameters if p.location == ParameterLocation.PATH]
        by_name = {p.name.lower(): p for p in declared}
        ordered: list[ParameterDescriptor] = []
        for name in self.path_placeholders:
            param = by_name.pop(name.lower(), None)
            if param is not None:
                ordered.append(param)
        ordered.extend(p for p in declared if p.name.lower() in by_name)
        return ordered

    @property
    def query_parameters(self) -> list[ParameterDescriptor]:
        """Query parameters in declared order."""
        return [p for p in self.parameters if p.location == ParameterLocation.QUERY]


class CommandDescriptor(BaseModel):
    """Presentation identity of an operation in the generated command tree.

    ``command_name`` is kebab-case and unique within its tag group;
    ``class_name`` names the generated handler and is unique globally.
    """

    model_config = ConfigDict(frozen=True)

    operation: OperationDescriptor
    command_name: str
    class_name: str

    @property
    def tag(self) -> str:
        return self.operation.tag


class TagGroupInfo(BaseModel):
    """Placement of a spec tag in the command tree.

    ``sub_tag`` is ``None`` for domain roots, whose commands attach
    directly to the domain branch.
    """

    model_config = ConfigDict(frozen=True)

    tag: str
    domain: Domain
    sub_tag: Optional[str] = None

    @property
    def is_root(self) -> bool:
        return self.sub_tag is None

    @property
    def sort_key(self) -> str:
        """Branch ordering key inside a domain: the sub-tag, else the raw tag."""
        return (self.sub_tag or self.tag).lower()
