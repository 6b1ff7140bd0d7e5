"""Shared test fixtures for awkgen.

Provides the sample spec, operation builders, isolated config
environments, output state management, and a CLI runner. These fixtures
are automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import pytest

from awkgen.models import (
    BodyProperty,
    HTTPMethod,
    OperationDescriptor,
    ParameterDescriptor,
)
from awkgen.output import OutputFormat, OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"

SAMPLE_SPEC = FIXTURES_DIR / "awork_sample.json"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the ``awkgen`` logger after every test.

    The OutputManager caches its Rich consoles and the root callback binds a
    log handler, and both hold references to the streams CliRunner swaps
    in. Resetting forces fresh ones on next use.
    """
    yield
    reset_output()
    logger = logging.getLogger("awkgen")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Spec fixtures
# ---------------------------------------------------------------------------


def load_sample() -> dict[str, Any]:
    """Load a fresh copy of the sample awork spec."""
    return json.loads(SAMPLE_SPEC.read_text(encoding="utf-8"))


@pytest.fixture
def sample_raw() -> dict[str, Any]:
    """The raw sample awork spec as a dict."""
    return load_sample()


@pytest.fixture
def minimal_raw() -> dict[str, Any]:
    """Smallest ready document: one operation, one schema."""
    return {
        "openapi": "3.0.0",
        "info": {"title": "Mini", "version": "1"},
        "paths": {
            "/users": {
                "get": {"tags": ["Users"], "operationId": "GetUsers", "summary": "List users."}
            }
        },
        "components": {"schemas": {"User": {"type": "object", "properties": {"id": {"type": "string"}}}}},
    }


# ---------------------------------------------------------------------------
# Descriptor builders
# ---------------------------------------------------------------------------


def _make_op(
    path: str,
    method: str = "get",
    tag: str = "Users",
    operation_id: Optional[str] = None,
    parameters: tuple[ParameterDescriptor, ...] = (),
    has_body: bool = False,
    body_required: bool = False,
    body_properties: tuple[BodyProperty, ...] = (),
    summary: Optional[str] = None,
) -> OperationDescriptor:
    """Build an :class:`OperationDescriptor` with sensible defaults."""
    op_id = operation_id or f"{method.capitalize()}{path.replace('/', '_').replace('{', '').replace('}', '')}"
    return OperationDescriptor(
        tag=tag,
        http_method=HTTPMethod(method),
        path_template=path,
        operation_id=op_id,
        generated_method_name=op_id,
        summary=summary,
        parameters=parameters,
        has_request_body=has_body,
        request_body_required=body_required,
        body_properties=body_properties,
    )


@pytest.fixture
def make_op():
    """Builder for operation descriptors: ``make_op("/users/{userId}", "put")``."""
    return _make_op


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_DATA_HOME into tmp_path, clears every AWKGEN_* variable,
    and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["AWKGEN_SPEC", "AWKGEN_OUTPUT_DIR", "AWKGEN_TABLES", "AWKGEN_CLIENT_CLASS"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
