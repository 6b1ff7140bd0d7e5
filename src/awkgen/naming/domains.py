"""Domain grouping -- place every tag, and so every command, in the CLI tree.

Each spec tag maps to one :class:`~awkgen.models.Domain` through the naming
tables. Root tags (the tag that names the domain, such as ``Tasks``)
attach their commands straight to the domain branch. Every other tag gets a
sub-branch whose name is the tag minus the domain's resource noun::

    TaskTags      -> tasks  / tags
    PrivateTasks  -> tasks  / private
    TimeEntries   -> times  / entries
    ApiUsers      -> users  / api-users   (override table)
    Users         -> users  / (root)

A tag missing from the tables resolves to :attr:`Domain.UNMAPPED`;
:meth:`DomainGrouper.check_mapped` turns that into an
:class:`~awkgen.exceptions.UnmappedTagError` before anything is emitted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from awkgen.exceptions import UnmappedTagError
from awkgen.models import CommandDescriptor, Domain, TagGroupInfo
from awkgen.naming.identifiers import IdentifierSanitizer, normalize_kebab
from awkgen.naming.tables import DEFAULT_TABLES, NamingTables

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BranchNode:
    """Commands of one tag; ``info.sub_tag`` is ``None`` for root tags."""

    info: TagGroupInfo
    commands: tuple[CommandDescriptor, ...]


@dataclass(frozen=True)
class DomainNode:
    domain: Domain
    description: str
    branches: tuple[BranchNode, ...]

    @property
    def root_commands(self) -> list[CommandDescriptor]:
        return [c for b in self.branches if b.info.is_root for c in b.commands]

    @property
    def sub_branches(self) -> list[BranchNode]:
        return [b for b in self.branches if not b.info.is_root]


@dataclass(frozen=True)
class CommandTree:
    """Ordered tree handed to the CLI emitter.

    ``auth`` holds the authentication domain, registered through its own
    entry point and never part of ``domains``.
    """

    domains: tuple[DomainNode, ...]
    auth: Optional[DomainNode] = None

    def iter_commands(self) -> Iterable[tuple[DomainNode, BranchNode, CommandDescriptor]]:
        nodes = list(self.domains) + ([self.auth] if self.auth else [])
        for node in nodes:
            for branch in node.branches:
                for command in branch.commands:
                    yield node, branch, command


class DomainGrouper:
    """Resolve tags to ``(domain, sub_tag)`` and order the command tree.

    Args:
        tables: Naming vocabulary. Defaults to :data:`DEFAULT_TABLES`.
        sanitizer: Shared sanitizer; built from *tables* when omitted.
    """

    def __init__(
        self,
        tables: Optional[NamingTables] = None,
        sanitizer: Optional[IdentifierSanitizer] = None,
    ) -> None:
        self._tables = tables or DEFAULT_TABLES
        self._ids = sanitizer or IdentifierSanitizer(self._tables)

    def resolve(self, tag: str) -> TagGroupInfo:
        """Return the :class:`TagGroupInfo` of *tag*."""
        domain = self._tables.domain_for_tag(tag)
        return TagGroupInfo(tag=tag, domain=domain, sub_tag=self.sub_tag(tag, domain))

    def sub_tag(self, tag: str, domain: Domain) -> Optional[str]:
        """Sub-branch name of *tag* inside *domain*, or ``None`` for a root."""
        if self._tables.is_root_tag(tag):
            return None
        override = self._tables.sub_override(tag)
        if override is not None:
            return override

        trimmed = tag
        prefix = self._tables.domain_prefixes.get(domain)
        if prefix and trimmed.lower().startswith(prefix.lower()):
            trimmed = trimmed[len(prefix):]
            if trimmed.startswith(" "):
                trimmed = trimmed[1:]
        suffix = self._tables.suffix_strip_domains.get(domain)
        if suffix and trimmed.lower().endswith(suffix.lower()):
            trimmed = trimmed[: len(trimmed) - len(suffix)]

        trimmed = trimmed.strip()
        if not trimmed:
            return None
        return normalize_kebab(self._ids.to_kebab_case(trimmed)) or None

    def check_mapped(self, commands: Iterable[CommandDescriptor]) -> None:
        """Fail when any command's tag maps to no domain.

        Raises:
            UnmappedTagError: Listing every unmapped tag with its operation ids.
        """
        unmapped: dict[str, list[str]] = {}
        for command in commands:
            if self._tables.domain_for_tag(command.tag) == Domain.UNMAPPED:
                unmapped.setdefault(command.tag, []).append(command.operation.operation_id)
        if unmapped:
            raise UnmappedTagError({tag: unmapped[tag] for tag in sorted(unmapped)})

    def build_tree(self, commands: Iterable[CommandDescriptor]) -> CommandTree:
        """Arrange *commands* into the ordered domain / branch / command tree.

        Raises:
            UnmappedTagError: If any tag is unmapped.
        """
        commands = list(commands)
        self.check_mapped(commands)

        by_tag: dict[str, list[CommandDescriptor]] = {}
        for command in commands:
            by_tag.setdefault(command.tag, []).append(command)

        by_domain: dict[Domain, list[BranchNode]] = {}
        for tag, tag_commands in by_tag.items():
            info = self.resolve(tag)
            ordered = tuple(sorted(tag_commands, key=lambda c: c.command_name))
            by_domain.setdefault(info.domain, []).append(BranchNode(info=info, commands=ordered))

        nodes: list[DomainNode] = []
        auth: Optional[DomainNode] = None
        for domain in sorted(by_domain, key=self._tables.domain_sort_key):
            branches = sorted(by_domain[domain], key=lambda b: (b.info.sort_key, b.info.tag))
            self._warn_duplicate_branches(domain, branches)
            node = DomainNode(
                domain=domain,
                description=self._tables.describe_domain(domain),
                branches=tuple(branches),
            )
            if domain == self._tables.auth_domain:
                auth = node
            else:
                nodes.append(node)
        return CommandTree(domains=tuple(nodes), auth=auth)

    @staticmethod
    def _warn_duplicate_branches(domain: Domain, branches: list[BranchNode]) -> None:
        seen: dict[str, str] = {}
        for branch in branches:
            sub = branch.info.sub_tag
            if sub is None:
                continue
            if sub in seen:
                logger.warning(
                    "Tags '%s' and '%s' share sub-branch '%s' in domain '%s'",
                    seen[sub], branch.info.tag, sub, domain.value,
                )
            seen.setdefault(sub, branch.info.tag)
