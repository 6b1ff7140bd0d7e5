"""CLI emitter -- a typer command tree over the generated client.

The generated module defines one handler function per command plus three
entry points:

* ``register(app)`` attaches every domain branch, each with its root
  commands and its sub-branches, to a typer app;
* ``register_auth(app)`` attaches the authentication domain, kept apart
  from the main tree;
* ``build_app()`` returns a ready app with both mounted, auth under
  ``auth``.

Handler parameters follow one layout:

* path parameters are positional arguments, in path-template order;
* query parameters are ``--kebab`` options, prefixed ``param-`` when they
  clash with an option the host CLI owns;
* body operations get ``--body``, ``--set`` and ``--set-json`` plus one
  option per scalar or array body property, prefixed ``body-`` on clashes.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from awkgen.generator.render import docstring, first_line, render
from awkgen.models import BodyPropertyKind, CommandDescriptor
from awkgen.naming.domains import BranchNode, CommandTree, DomainNode
from awkgen.naming.identifiers import IdentifierSanitizer, UniqueNames, normalize_kebab
from awkgen.naming.tables import DEFAULT_TABLES, NamingTables

MODULE_NAMES = (
    "annotations",
    "Any",
    "List",
    "Optional",
    "typer",
    "rt",
    "DEFAULT_BASE_URL",
    "register",
    "register_auth",
    "build_app",
)
"""Module-level names of the generated CLI; handler names must avoid them."""

_RESERVED_PARAMETERS = (
    "ctx", "client", "_call", "body", "set_", "set_json",
    "rt", "typer", "Any", "List", "Optional",
)


@dataclass(frozen=True)
class Handler:
    function: str
    command: str
    help: str
    parameters: tuple[str, ...]
    call_arguments: tuple[str, ...]
    method: str


@dataclass(frozen=True)
class Branch:
    variable: str
    name: str
    help: str
    handlers: tuple[Handler, ...]


@dataclass
class DomainBlock:
    variable: str
    name: str
    help: str
    handlers: list[Handler] = field(default_factory=list)
    branches: list[Branch] = field(default_factory=list)


def _numbered(base: str, sep: str) -> Iterator[str]:
    yield base
    for counter in itertools.count(2):
        yield f"{base}{sep}{counter}"


def _flag_candidates(flag: str, prefix: str) -> Iterator[str]:
    yield flag
    yield from _numbered(f"{prefix}-{flag}", "-")


class CliEmitter:
    """Render ``cli.py`` for a :class:`~awkgen.naming.domains.CommandTree`.

    Args:
        tables: Supplies the host CLI's reserved option names.
        client_class: Generated client class the handlers call.
        sanitizer: Identifier helper shared with the rest of the pass.
    """

    def __init__(
        self,
        tables: Optional[NamingTables] = None,
        client_class: str = "AworkClient",
        sanitizer: Optional[IdentifierSanitizer] = None,
    ) -> None:
        self._tables = tables or DEFAULT_TABLES
        self._client_class = client_class
        self._ids = sanitizer or IdentifierSanitizer(self._tables)

    @staticmethod
    def reserved_handler_names(client_class: str) -> tuple[str, ...]:
        return MODULE_NAMES + (client_class,)

    # ------------------------------------------------------------------ #
    # Handlers
    # ------------------------------------------------------------------ #

    def _identifier(self, used: UniqueNames, name: str) -> str:
        base = self._ids.sanitize(self._ids.to_snake_case(name) or name)
        return used.claim(_numbered(base, "_"))

    def _flag(self, name: str) -> str:
        return normalize_kebab(self._ids.to_word_kebab_case(name)) or "value"

    def build_handler(self, command: CommandDescriptor) -> Handler:
        """Describe the typer function for one command."""
        op = command.operation
        idents = UniqueNames(_RESERVED_PARAMETERS)
        flags = UniqueNames(set(self._tables.reserved_option_names) | {"help"})
        parameters: list[str] = ["ctx: typer.Context"]
        call_arguments: list[str] = []

        for param in op.path_parameters:
            ident = self._identifier(idents, param.name)
            metavar = ident.strip("_").upper() or "VALUE"
            parameters.append(
                f"{ident}: str = typer.Argument(..., metavar={metavar!r}, "
                f"help={first_line(param.description, fallback=param.name)!r}, show_default=False)"
            )
            call_arguments.append(ident)

        query_items: list[str] = []
        for param in op.query_parameters:
            ident = self._identifier(idents, param.name)
            flag = flags.claim(_flag_candidates(self._flag(param.name), "param"))
            type_ = "List[str]" if param.is_array else "str"
            if param.required:
                annotation, default = type_, "..."
            else:
                annotation, default = f"Optional[{type_}]", "None"
            option = f"--{flag}"
            parameters.append(
                f"{ident}: {annotation} = typer.Option({default}, {option!r}, "
                f"help={first_line(param.description, fallback=param.name)!r})"
            )
            query_items.append(f"{param.name!r}: {ident}")

        if op.has_request_body:
            parameters.extend([
                "body: Optional[str] = typer.Option(None, '--body', "
                "help='Request body as JSON, or @file to read it from a file.')",
                "set_: Optional[List[str]] = typer.Option(None, '--set', "
                "help='Body field as KEY=VALUE; dotted keys nest. Repeatable.')",
                "set_json: Optional[List[str]] = typer.Option(None, '--set-json', "
                "help='Body field as KEY=JSON or KEY=@file. Repeatable.')",
            ])
            field_items: list[str] = []
            for prop in op.body_properties:
                if prop.kind not in (BodyPropertyKind.SCALAR, BodyPropertyKind.ARRAY):
                    continue
                ident = self._identifier(idents, prop.name)
                flag = flags.claim(_flag_candidates(self._flag(prop.name), "body"))
                type_ = "Optional[List[str]]" if prop.kind == BodyPropertyKind.ARRAY else "Optional[str]"
                option = f"--{flag}"
                help_text = f"Body field '{prop.name}'."
                parameters.append(
                    f"{ident}: {type_} = typer.Option(None, {option!r}, help={help_text!r})"
                )
                field_items.append(f"{prop.name!r}: {ident}")
            allowed = tuple(prop.name for prop in op.body_properties)
            call_arguments.append(
                "body=rt.body_from_options(body, set_, set_json, "
                f"{{{', '.join(field_items)}}}, allowed={allowed!r}, "
                f"required={op.request_body_required!r})"
            )

        if query_items:
            call_arguments.append(f"query=rt.query_from_options({{{', '.join(query_items)}}})")

        return Handler(
            function=command.class_name,
            command=command.command_name,
            help=docstring(op.summary, fallback=f"{op.http_method.value.upper()} {op.path_template}"),
            parameters=tuple(parameters),
            call_arguments=tuple(call_arguments),
            method=op.generated_method_name,
        )

    # ------------------------------------------------------------------ #
    # Tree
    # ------------------------------------------------------------------ #

    def _block(self, node: DomainNode, variable: str) -> DomainBlock:
        block = DomainBlock(variable=variable, name=node.domain.value, help=node.description)
        names = UniqueNames()
        for command in node.root_commands:
            names.add(command.command_name)
            block.handlers.append(self.build_handler(command))
        for index, branch in enumerate(node.sub_branches):
            block.branches.append(self._branch(branch, f"{variable}_{index}", names))
        return block

    def _branch(self, branch: BranchNode, variable: str, names: UniqueNames) -> Branch:
        return Branch(
            variable=variable,
            name=names.claim(_numbered(branch.info.sub_tag or normalize_kebab(branch.info.tag), "-")),
            help=f"{branch.info.tag} commands.",
            handlers=tuple(self.build_handler(c) for c in branch.commands),
        )

    def build_blocks(self, tree: CommandTree) -> tuple[list[DomainBlock], Optional[DomainBlock]]:
        """Template blocks for the main domains and the auth domain."""
        domains = [self._block(node, f"_d{i}") for i, node in enumerate(tree.domains)]
        # auth commands attach straight to the app passed to register_auth
        auth = self._block(tree.auth, "app") if tree.auth else None
        return domains, auth

    def render(self, tree: CommandTree) -> str:
        """Source text of ``cli.py``."""
        domains, auth = self.build_blocks(tree)
        handlers = list(iter_handlers(domains + ([auth] if auth else [])))
        return render(
            "cli.py.j2",
            client_class=self._client_class,
            handlers=handlers,
            domains=domains,
            auth=auth,
        )


def iter_handlers(blocks: Iterable[DomainBlock]) -> Iterator[Handler]:
    for block in blocks:
        yield from block.handlers
        for branch in block.branches:
            yield from branch.handlers
