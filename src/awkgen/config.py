"""Settings resolution, naming-table overrides, and atomic file writes.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.awkgen/`` elsewhere. Only the data directory is used, for crash logs.
* **Project config** -- ``./awkgen.json`` pins the spec location, output
  directory, and tables file for a repository.
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  ``AWKGEN_*`` environment variables, the project config, and defaults into
  a :class:`~awkgen.models.GeneratorSettings`.
* **Naming tables** -- :func:`load_tables` reads a JSON or YAML file of
  overrides and merges it over :data:`~awkgen.naming.tables.DEFAULT_TABLES`.

File writes go through :func:`atomic_write` (temp file, then rename), so a
crash never leaves a half-written generated module behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from awkgen.exceptions import ConfigError
from awkgen.models import GeneratorSettings
from awkgen.naming.tables import DEFAULT_TABLES, NamingTables

_APP_NAME = "awkgen"
PROJECT_CONFIG_FILENAME = "awkgen.json"

ENV_VARS: dict[str, str] = {
    "spec": "AWKGEN_SPEC",
    "output_dir": "AWKGEN_OUTPUT_DIR",
    "tables": "AWKGEN_TABLES",
    "client_class": "AWKGEN_CLIENT_CLASS",
}
"""Settings field -> environment variable."""


# --- XDG paths ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/awkgen/`` (default ``~/.local/share/awkgen/``).
    Elsewhere: ``~/.awkgen/logs/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* through a temp file in the same directory.

    ``os.replace`` makes the final rename atomic on POSIX; the temp file is
    removed on any failure.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    handle = None
    tmp_path: Optional[str] = None
    try:
        handle = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
            newline="\n",
        )
        tmp_path = handle.name
        handle.write(data)
        handle.flush()
        os.fsync(handle.fileno())
        handle.close()
        handle = None
        os.replace(tmp_path, path)
    except BaseException:
        if handle is not None:
            handle.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Project-local config ---


def load_project_config(directory: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load ``awkgen.json`` from *directory* (default: the working directory).

    Returns:
        The parsed object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = (directory or Path.cwd()) / PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def resolve_settings(
    cli_overrides: Optional[dict[str, Any]] = None,
    directory: Optional[Path] = None,
) -> GeneratorSettings:
    """Resolve the effective settings of one generation run.

    Precedence (high to low):
        1. CLI flags (*cli_overrides*; ``None`` values are ignored)
        2. Environment variables (:data:`ENV_VARS`)
        3. Project config (``./awkgen.json``)
        4. Defaults

    Raises:
        ConfigError: If the merged values fail validation.
    """
    merged: dict[str, Any] = {}

    project = load_project_config(directory)
    if project:
        merged.update(project)

    for field, env_var in ENV_VARS.items():
        value = os.environ.get(env_var)
        if value:
            merged[field] = value

    for field, value in (cli_overrides or {}).items():
        if value is not None:
            merged[field] = value

    try:
        return GeneratorSettings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid generator settings: {exc}") from exc


# --- Naming tables ---


def load_tables(path: Optional[str]) -> NamingTables:
    """Return the naming tables, with the overrides in *path* applied.

    The file may be JSON or YAML (chosen by extension) and may set any
    subset of :class:`~awkgen.naming.tables.NamingTables` fields. Without a
    path the defaults are returned unchanged.

    Raises:
        ConfigError: If the file is missing, unparsable, or invalid.
    """
    if not path:
        return DEFAULT_TABLES

    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise ConfigError(f"Naming tables file not found: {file_path}")
    try:
        text = file_path.read_text(encoding="utf-8")
        if file_path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read naming tables {file_path}: {exc}") from exc

    if data is None:
        return DEFAULT_TABLES
    if not isinstance(data, dict):
        raise ConfigError(f"Naming tables {file_path} must contain a mapping")
    try:
        return DEFAULT_TABLES.with_overrides(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid naming tables {file_path}: {exc}") from exc
