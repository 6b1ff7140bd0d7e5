"""Typer application and CLI entry point for awkgen.

This module wires together the top-level Typer application: the global
output options, the ``generate`` command that turns an OpenAPI document
into the DTO, client, and CLI modules, and the read-only ``inspect``
group for looking at the command tree before writing anything.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a signal handler and invokes the Typer
app. :class:`~awkgen.exceptions.AwkgenError` exits with the error's
``exit_code``; any other exception is written to a crash log under the
data directory.

See Also:
    :mod:`awkgen.config`: Settings resolution and naming-table overrides.
    :mod:`awkgen.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import contextlib
import keyword
import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional

import typer

from awkgen import __version__
from awkgen.exceptions import AwkgenError, InvalidUsageError, StaleArtifactsError
from awkgen.exit_codes import EXIT_GENERIC_FAILURE, EXIT_UNMAPPED_TAG
from awkgen.output import error, get_output, info, suggest, success, warning

app = typer.Typer(
    name="awkgen",
    help="Generate a typed client, DTOs, and a CLI from the awork OpenAPI spec.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

inspect_app = typer.Typer(no_args_is_help=True)
app.add_typer(inspect_app, name="inspect", help="Inspect the command tree a spec produces.")

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"awkgen {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Send ``awkgen.*`` log records to stderr; DEBUG when *verbose*."""
    logger = logging.getLogger("awkgen")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~awkgen.output.OutputManager` from the
    CLI flags and configures logging for the ``awkgen`` package.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output and logging.
    """
    from awkgen.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@contextlib.contextmanager
def _reported_errors() -> Iterator[None]:
    """Print an :class:`AwkgenError` and exit with its code."""
    try:
        yield
    except AwkgenError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _load_document(spec: str) -> dict[str, Any]:
    from awkgen.parser import load_spec, validate_openapi_version

    raw = load_spec(spec)
    version = validate_openapi_version(raw)
    get_output().debug(f"Loaded OpenAPI {version} document from {spec}")
    return raw


# ------------------------------------------------------------------ #
# generate
# ------------------------------------------------------------------ #


@app.command("generate")
def generate_command(
    spec: Optional[str] = typer.Argument(
        None, help="OpenAPI document: URL, file path, or '-' for stdin."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-o", help="Directory receiving the generated modules."
    ),
    tables: Optional[str] = typer.Option(
        None, "--tables", help="JSON/YAML file overriding the naming tables."
    ),
    client_class: Optional[str] = typer.Option(
        None, "--client-class", help="Class name of the generated client."
    ),
    check: bool = typer.Option(
        False, "--check", help="Compare with the files on disk instead of writing."
    ),
) -> None:
    """Generate ``dtos.py``, ``client.py``, ``cli.py`` and ``__init__.py``.

    Settings left out on the command line fall back to ``AWKGEN_*``
    environment variables, then ``./awkgen.json``. Nothing is written when
    a tag is unmapped or the spec fails to load.

    Example::

        awkgen generate openapi.json -o src/awork_api
        awkgen generate https://api.awork.com/api/v1/swagger.json --check
    """
    from awkgen.config import load_tables, resolve_settings
    from awkgen.generator import CodeGenerator, stale_artifacts, write_artifacts

    with _reported_errors():
        settings = resolve_settings({
            "spec": spec,
            "output_dir": output_dir,
            "tables": tables,
            "client_class": client_class,
        })
        if not settings.spec:
            raise InvalidUsageError("No spec given. Pass SPEC or set AWKGEN_SPEC.")
        name = settings.client_class
        if not name.isidentifier() or keyword.iskeyword(name):
            raise InvalidUsageError(f"Invalid client class name '{name}'.")

        generator = CodeGenerator(load_tables(settings.tables), name)
        result = generator.run(_load_document(settings.spec))
        if not result.ready:
            warning("Spec has no paths or component schemas yet; nothing generated.")
            return

        out_dir = Path(settings.output_dir)
        if check:
            stale = stale_artifacts(result.artifacts, out_dir)
            if stale:
                raise StaleArtifactsError(
                    f"Generated files in {out_dir} are out of date: {', '.join(stale)}. "
                    "Run: awkgen generate"
                )
            success(f"Generated files in {out_dir} are up to date.")
            return

        written = write_artifacts(result.artifacts, out_dir)
        output = get_output()
        for path in written:
            output.print_data(str(path))
        success(
            f"Generated {len(result.commands)} commands, {len(result.operations)} client methods "
            f"and {result.dto_count} models in {out_dir}"
        )


# ------------------------------------------------------------------ #
# inspect
# ------------------------------------------------------------------ #


@inspect_app.command("commands")
def inspect_commands(
    spec: str = typer.Argument(..., help="OpenAPI document: URL, file path, or '-'."),
    tables: Optional[str] = typer.Option(
        None, "--tables", help="JSON/YAML file overriding the naming tables."
    ),
) -> None:
    """List every generated command with its route.

    Example::

        awkgen inspect commands openapi.json --plain
    """
    from awkgen.config import load_tables
    from awkgen.generator import CodeGenerator

    with _reported_errors():
        result = CodeGenerator(load_tables(tables)).analyze(_load_document(spec))

    if not result.ready:
        warning("Spec has no paths or component schemas yet.")
        return

    headers = ["Domain", "Branch", "Command", "Method", "Path"]
    rows: list[list[str]] = []
    for node, branch, command in result.tree.iter_commands():
        op = command.operation
        rows.append([
            node.domain.value,
            branch.info.sub_tag or "",
            command.command_name,
            op.http_method.value.upper(),
            op.path_template,
        ])
    get_output().print_table(headers, rows, title=f"Commands ({len(rows)})")


@inspect_app.command("tags")
def inspect_tags(
    spec: str = typer.Argument(..., help="OpenAPI document: URL, file path, or '-'."),
    tables: Optional[str] = typer.Option(
        None, "--tables", help="JSON/YAML file overriding the naming tables."
    ),
) -> None:
    """Show where each tag lands in the command tree.

    Exits with code 8 when any tag maps to no domain.

    Example::

        awkgen inspect tags openapi.json
    """
    from awkgen.config import load_tables
    from awkgen.generator import CodeGenerator
    from awkgen.models import Domain

    with _reported_errors():
        mapping = CodeGenerator(load_tables(tables)).tag_map(_load_document(spec))

    headers = ["Tag", "Domain", "Branch"]
    rows = [
        [info_.tag, info_.domain.value, info_.sub_tag or "(root)"]
        for info_ in mapping
    ]
    get_output().print_table(headers, rows, title=f"Tags ({len(rows)})")

    unmapped = [info_.tag for info_ in mapping if info_.domain == Domain.UNMAPPED]
    if unmapped:
        error(f"Tags not mapped to any domain: {', '.join(unmapped)}")
        suggest("Map them under tag_domains in a file passed with --tables.")
        raise typer.Exit(code=EXIT_UNMAPPED_TAG)
    info(f"All {len(rows)} tags are mapped.")


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from awkgen.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``awkgen`` console script.

    Unhandled :class:`~awkgen.exceptions.AwkgenError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except AwkgenError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
