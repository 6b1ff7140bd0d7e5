"""One generation pass: spec document in, artifact texts out.

The pass is a pure function of the document and the naming tables:

1. :class:`~awkgen.parser.resolver.SchemaResolver` wraps the document;
2. :class:`~awkgen.parser.collector.OperationCollector` produces the
   operation list with unique client method names;
3. :class:`~awkgen.naming.commands.CommandNamer` names commands and
   handlers;
4. :class:`~awkgen.naming.domains.DomainGrouper` builds the command tree,
   failing on unmapped tags before anything is rendered;
5. the DTO, client, and CLI emitters render their modules.

A document without ``paths`` or ``components.schemas`` is *not ready*: the
pass returns an empty result instead of raising. Nothing in the result
depends on time or environment, so two runs over the same document produce
identical artifacts.

Example::

    result = CodeGenerator().run(load_spec("openapi.json"))
    write_artifacts(result.artifacts, Path("generated"))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from awkgen.client.api_client import RESERVED_ATTRIBUTES
from awkgen.generator.cli import CliEmitter
from awkgen.generator.client import ClientEmitter
from awkgen.generator.dto import DtoEmitter
from awkgen.generator.render import render
from awkgen.models import CommandDescriptor, OperationDescriptor, TagGroupInfo
from awkgen.naming.commands import CommandNamer
from awkgen.naming.domains import CommandTree, DomainGrouper
from awkgen.naming.identifiers import IdentifierSanitizer
from awkgen.naming.tables import DEFAULT_TABLES, NamingTables
from awkgen.parser.collector import OperationCollector
from awkgen.parser.resolver import SchemaResolver

logger = logging.getLogger(__name__)

ARTIFACT_NAMES = ("dtos.py", "client.py", "cli.py", "__init__.py")


@dataclass
class GenerationResult:
    """Everything one pass produced.

    ``ready`` is False when the document lacked ``paths`` or
    ``components.schemas``; every other field is then empty.
    """

    ready: bool
    operations: list[OperationDescriptor] = field(default_factory=list)
    commands: list[CommandDescriptor] = field(default_factory=list)
    tree: CommandTree = field(default_factory=lambda: CommandTree(domains=()))
    artifacts: dict[str, str] = field(default_factory=dict)
    dto_count: int = 0


def is_ready(document: dict[str, Any]) -> bool:
    """True when *document* has a ``paths`` mapping and ``components.schemas``."""
    components = document.get("components")
    return isinstance(document.get("paths"), dict) and (
        isinstance(components, dict) and isinstance(components.get("schemas"), dict)
    )


class CodeGenerator:
    """Run generation passes with fixed tables and client class name.

    Args:
        tables: Naming vocabulary; defaults to :data:`DEFAULT_TABLES`.
        client_class: Name of the generated client class.
    """

    def __init__(
        self,
        tables: Optional[NamingTables] = None,
        client_class: str = "AworkClient",
    ) -> None:
        self._tables = tables or DEFAULT_TABLES
        self._client_class = client_class
        self._ids = IdentifierSanitizer(self._tables)

    def analyze(self, document: dict[str, Any]) -> GenerationResult:
        """Collect, name, and group operations without rendering.

        Raises:
            UnmappedTagError: If any operation's tag maps to no domain.
        """
        if not is_ready(document):
            logger.info("Spec has no paths or component schemas yet; nothing to generate")
            return GenerationResult(ready=False)

        resolver = SchemaResolver(document)
        collector = OperationCollector(
            resolver, self._tables, self._ids, reserved_method_names=RESERVED_ATTRIBUTES
        )
        operations = collector.collect(document["paths"])
        namer = CommandNamer(self._tables, sanitizer=self._ids)
        commands = namer.name_operations(
            operations, reserved_handlers=CliEmitter.reserved_handler_names(self._client_class)
        )
        tree = DomainGrouper(self._tables, self._ids).build_tree(commands)
        logger.debug("Collected %d operations into %d domains", len(operations), len(tree.domains))
        return GenerationResult(ready=True, operations=operations, commands=commands, tree=tree)

    def run(self, document: dict[str, Any]) -> GenerationResult:
        """Full pass: analyze, then render all artifacts.

        Raises:
            UnmappedTagError: Before any artifact is rendered.
        """
        result = self.analyze(document)
        if not result.ready:
            return result

        dto_emitter = DtoEmitter(SchemaResolver(document), self._ids)
        models = dto_emitter.build_models()
        result.dto_count = len(models)
        result.artifacts = {
            "dtos.py": render("dtos.py.j2", models=models),
            "client.py": ClientEmitter(self._client_class, self._ids).render(result.operations),
            "cli.py": CliEmitter(self._tables, self._client_class, self._ids).render(result.tree),
            "__init__.py": render("package_init.py.j2", client_class=self._client_class),
        }
        return result

    def tag_map(self, document: dict[str, Any]) -> list[TagGroupInfo]:
        """Placement of every operation tag, in first-seen order.

        Unlike :meth:`analyze` this never raises for unmapped tags; they
        come back with :attr:`Domain.UNMAPPED` so callers can report them.
        """
        paths = document.get("paths")
        if not isinstance(paths, dict):
            return []
        operations = OperationCollector(SchemaResolver(document), self._tables, self._ids).collect(paths)
        grouper = DomainGrouper(self._tables, self._ids)
        return [grouper.resolve(tag) for tag in dict.fromkeys(op.tag for op in operations)]
