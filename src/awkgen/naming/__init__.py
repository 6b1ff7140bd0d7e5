"""Naming and grouping engine -- from operations to a command tree.

Sub-modules:

* :mod:`~awkgen.naming.tables` -- immutable lookup tables, with the awork
  defaults in :data:`~awkgen.naming.tables.DEFAULT_TABLES`.
* :mod:`~awkgen.naming.identifiers` -- identifier sanitising, case
  conversion, compound-word splitting, and candidate-chain uniqueness.
* :mod:`~awkgen.naming.commands` -- the rule table that names commands and
  resolves collisions inside a tag group.
* :mod:`~awkgen.naming.domains` -- tag to domain / sub-branch mapping and
  tree ordering.
"""

from awkgen.naming.commands import NAMING_RULES, CommandNamer, NamingRule
from awkgen.naming.domains import CommandTree, DomainGrouper
from awkgen.naming.identifiers import IdentifierSanitizer, UniqueNames
from awkgen.naming.tables import DEFAULT_TABLES, NamingTables

__all__ = [
    "CommandNamer",
    "CommandTree",
    "DEFAULT_TABLES",
    "DomainGrouper",
    "IdentifierSanitizer",
    "NAMING_RULES",
    "NamingRule",
    "NamingTables",
    "UniqueNames",
]
