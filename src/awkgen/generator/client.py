"""Client emitter -- one method per operation on an :class:`ApiClient` subclass.

Each method takes the operation's path parameters in path-template order,
then ``body`` when the operation has a request body, then an optional
``query`` mapping, and returns the
:class:`~awkgen.client.api_client.ResponseEnvelope` of
:meth:`~awkgen.client.api_client.ApiClient.call`.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Iterator, Optional

from awkgen.generator.render import docstring, render
from awkgen.models import OperationDescriptor
from awkgen.naming.identifiers import IdentifierSanitizer, UniqueNames

_RESERVED_ARGUMENTS = ("self", "body", "query")


@dataclass(frozen=True)
class PathArgument:
    identifier: str
    placeholder: str


@dataclass(frozen=True)
class ClientMethod:
    name: str
    http_method: str
    path_template: str
    summary: str
    arguments: tuple[PathArgument, ...]
    has_body: bool
    body_required: bool
    content_type: str

    @property
    def signature(self) -> str:
        parts = ["self"] + [f"{arg.identifier}: Any" for arg in self.arguments]
        if self.has_body:
            parts.append("body: Any" if self.body_required else "body: Any = None")
        parts.append("query: Optional[dict[str, Any]] = None")
        return ", ".join(parts)

    @property
    def path_values(self) -> str:
        items = ", ".join(f"{arg.placeholder!r}: {arg.identifier}" for arg in self.arguments)
        return "{" + items + "}"


def argument_identifiers(
    sanitizer: IdentifierSanitizer,
    names: list[str],
    reserved: tuple[str, ...] = _RESERVED_ARGUMENTS,
) -> list[str]:
    """snake_case Python identifiers for *names*, unique and clear of *reserved*."""
    used = UniqueNames(reserved)
    identifiers: list[str] = []
    for name in names:
        base = sanitizer.sanitize(sanitizer.to_snake_case(name) or name)
        identifiers.append(used.claim(_numbered(base)))
    return identifiers


def _numbered(base: str) -> Iterator[str]:
    yield base
    for counter in itertools.count(2):
        yield f"{base}_{counter}"


class ClientEmitter:
    """Render ``client.py`` for a list of operations.

    Args:
        client_class: Name of the generated class.
        sanitizer: Identifier helper shared with the rest of the pass.
    """

    def __init__(
        self,
        client_class: str = "AworkClient",
        sanitizer: Optional[IdentifierSanitizer] = None,
    ) -> None:
        self._client_class = client_class
        self._ids = sanitizer or IdentifierSanitizer()

    def build_method(self, op: OperationDescriptor) -> ClientMethod:
        placeholders = {name.lower(): name for name in op.path_placeholders}
        params = op.path_parameters
        identifiers = argument_identifiers(self._ids, [p.name for p in params])
        return ClientMethod(
            name=op.generated_method_name,
            http_method=op.http_method.value.upper(),
            path_template=op.path_template,
            summary=docstring(op.summary, fallback=f"{op.http_method.value.upper()} {op.path_template}"),
            arguments=tuple(
                PathArgument(identifier=ident, placeholder=placeholders.get(p.name.lower(), p.name))
                for p, ident in zip(params, identifiers)
            ),
            has_body=op.has_request_body,
            body_required=op.request_body_required,
            content_type=op.request_content_type,
        )

    def render(self, operations: list[OperationDescriptor]) -> str:
        """Source text of ``client.py``."""
        return render(
            "client.py.j2",
            client_class=self._client_class,
            methods=[self.build_method(op) for op in operations],
        )
