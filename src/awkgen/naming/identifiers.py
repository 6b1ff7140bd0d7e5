"""Identifier sanitising and case conversion.

:class:`IdentifierSanitizer` turns operation ids, path segments, and schema
property names into safe Python identifiers and into the kebab-case
tokens used for command names.

Word splitting happens in two stages:

1. :meth:`~IdentifierSanitizer.split_words` breaks on non-alphanumeric
   delimiters and on camelCase transitions (an upper-case letter after a
   lower-case one).
2. :meth:`~IdentifierSanitizer.split_known_fragments` re-splits words that
   came out entirely lower case, since those are usually glued path
   segments such as ``changebasetypes``. The longest known fragment at the
   current position wins; an unmatched remainder stays as one token.

Example::

    s = IdentifierSanitizer()
    s.to_kebab_case("changebasetypes")    # 'change-base-types'
    s.to_kebab_case("getUsersById")       # 'get-users-by-id'
    s.to_pascal_case("task-lists")        # 'TaskLists'
    s.sanitize("3dModel")                 # '_3dModel'
"""

from __future__ import annotations

import keyword
import re
from typing import Iterable, Optional

from awkgen.naming.tables import DEFAULT_TABLES, NamingTables

_KEBAB_JUNK_RE = re.compile(r"[^a-z0-9]+")

PLACEHOLDER_IDENTIFIER = "_"


def path_segments(path: str) -> list[str]:
    """Split a path template into its non-empty segments."""
    return [s for s in path.split("/") if s]


def is_path_param(segment: str) -> bool:
    """Return True for a ``{placeholder}`` segment."""
    return segment.startswith("{") and segment.endswith("}")


def param_name(segment: str) -> str:
    """Strip the braces from a ``{placeholder}`` segment."""
    return segment[1:-1] if is_path_param(segment) else segment


def normalize_kebab(value: str) -> str:
    """Collapse *value* into ``^[a-z0-9]+(-[a-z0-9]+)*$`` form.

    Returns an empty string when nothing usable is left.
    """
    return _KEBAB_JUNK_RE.sub("-", value.lower()).strip("-")


class IdentifierSanitizer:
    """Safe identifiers and case conversions driven by :class:`NamingTables`.

    Args:
        tables: Source of the known-word fragments, the unsplittable words,
            and the pre-split word replacements.
    """

    def __init__(self, tables: Optional[NamingTables] = None) -> None:
        self._tables = tables or DEFAULT_TABLES
        # longest fragments first; ties keep table order
        self._fragments = sorted(
            self._tables.word_fragments, key=len, reverse=True
        )

    # ------------------------------------------------------------------ #
    # Identifiers
    # ------------------------------------------------------------------ #

    def sanitize(self, name: Optional[str]) -> str:
        """Reduce *name* to ASCII letters, digits and underscores.

        Characters outside that set are dropped in place. A leading digit
        gets an underscore prefix and a Python keyword gets an underscore
        escape. Never fails: blank input yields ``"_"``.
        """
        if not name or not name.strip():
            return PLACEHOLDER_IDENTIFIER
        chars: list[str] = []
        for ch in name:
            if ch.isascii() and (ch.isalnum() or ch == "_"):
                if not chars and ch.isdigit():
                    chars.append("_")
                chars.append(ch)
        ident = "".join(chars) or PLACEHOLDER_IDENTIFIER
        if keyword.iskeyword(ident):
            return "_" + ident
        return ident

    def path_to_name(self, path: str) -> str:
        """PascalCase name for a path: literals as words, ``{x}`` as ``ByX``.

        Example::

            path_to_name("/users/{userId}/contactinfo")  # 'UsersByUserIdContactinfo'
        """
        parts: list[str] = []
        for segment in path_segments(path):
            if is_path_param(segment):
                parts.append("By" + self.to_pascal_case(param_name(segment)))
            else:
                parts.append(self.to_pascal_case(segment))
        return "".join(parts)

    # ------------------------------------------------------------------ #
    # Case conversion
    # ------------------------------------------------------------------ #

    def split_words(self, text: str) -> list[str]:
        """Split *text* on delimiters and lower-to-upper transitions."""
        for old, new in self._tables.word_replacements.items():
            text = text.replace(old, new)
        words: list[str] = []
        current: list[str] = []
        for ch in text:
            if not ch.isalnum():
                if current:
                    words.append("".join(current))
                    current = []
                continue
            if current and ch.isupper() and current[-1].islower():
                words.append("".join(current))
                current = [ch]
                continue
            current.append(ch)
        if current:
            words.append("".join(current))
        return words

    def split_known_fragments(self, word: str) -> list[str]:
        """Split a glued lower-case word into known fragments.

        Words carrying any upper-case letter are returned unchanged, as are
        the unsplittable words.
        """
        if any(ch.isupper() for ch in word):
            return [word]
        lower = word.lower()
        if lower in self._tables.unsplittable_words:
            return [lower]

        pieces: list[str] = []
        remaining = lower
        while remaining:
            match = next((f for f in self._fragments if remaining.startswith(f)), None)
            if match is None:
                pieces.append(remaining)
                break
            pieces.append(match)
            remaining = remaining[len(match):]
        return pieces

    def to_pascal_case(self, text: str) -> str:
        if not text or not text.strip():
            return text
        words = self.split_words(text)
        if not words:
            return text
        return "".join(w[0].upper() + w[1:] for w in words)

    def to_kebab_case(self, text: str) -> str:
        """Kebab-case *text*, splitting glued compound words along the way.

        Example::

            to_kebab_case("setassignees")   # 'set-assignees'
            to_kebab_case("TypeOfWork")     # 'type-of-work'
        """
        if not text or not text.strip():
            return text
        words = self.split_words(text)
        if not words:
            return text.lower()
        expanded: list[str] = []
        for word in words:
            expanded.extend(self.split_known_fragments(word))
        return "-".join(expanded).lower()

    def to_snake_case(self, text: str) -> str:
        """snake_case *text* on word boundaries only, without fragment splitting."""
        return "_".join(w.lower() for w in self.split_words(text))

    def to_word_kebab_case(self, text: str) -> str:
        """kebab-case *text* on word boundaries only, for option flags.

        ``token`` stays ``token`` here, where :meth:`to_kebab_case` would
        split it into known fragments.
        """
        return "-".join(w.lower() for w in self.split_words(text))


class UniqueNames:
    """Case-insensitive registry of taken names.

    :meth:`claim` walks a candidate chain and takes the first free entry,
    so every uniqueness policy in the generator is expressed as an ordered
    iterator of candidates ending in an unbounded numeric tail.

    Args:
        reserved: Names that count as taken from the start.
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._taken: set[str] = {name.lower() for name in reserved}

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._taken

    def add(self, name: str) -> bool:
        """Take *name*; return False when it was already taken."""
        key = name.lower()
        if key in self._taken:
            return False
        self._taken.add(key)
        return True

    def claim(self, candidates: Iterable[str]) -> str:
        """Take and return the first free candidate.

        Raises:
            ValueError: If *candidates* runs out, which only happens for a
                finite chain.
        """
        for candidate in candidates:
            if self.add(candidate):
                return candidate
        raise ValueError("candidate chain exhausted without a free name")
