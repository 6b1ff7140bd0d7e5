"""Jinja2 environment and literal helpers for the artifact templates.

Templates live in ``generator/templates/`` and produce Python source, so
autoescaping is disabled for ``.py.j2`` files. Anything interpolated as a
Python literal goes through the ``pyrepr`` filter; docstring text goes
through ``docstring``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Directory holding the ``*.py.j2`` artifact templates."""


def pyrepr(value: Any) -> str:
    """Python literal for *value* (strings, numbers, tuples of those)."""
    return repr(value)


def first_line(text: Optional[str], fallback: str = "") -> str:
    """First non-blank line of *text*, else *fallback*."""
    line = next((ln.strip() for ln in (text or "").splitlines() if ln.strip()), "")
    return line or fallback


def docstring(text: Optional[str], fallback: str = "") -> str:
    """:func:`first_line`, escaped for use inside a triple-quoted string."""
    line = first_line(text, fallback)
    return line.replace("\\", "\\\\").replace('"', '\\"')


def create_environment() -> Environment:
    """Build the template environment."""
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(disabled_extensions=("py.j2",)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["pyrepr"] = pyrepr
    env.filters["docstring"] = docstring
    return env


_environment: Optional[Environment] = None


def render(template: str, **context: Any) -> str:
    """Render *template* with *context* using the shared environment."""
    global _environment
    if _environment is None:
        _environment = create_environment()
    return _environment.get_template(template).render(**context)
