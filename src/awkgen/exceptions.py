"""Exception hierarchy for awkgen.

All exceptions inherit from :class:`AwkgenError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`awkgen.exit_codes`.
The top-level error handler in :func:`awkgen.app.main` catches
``AwkgenError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    AwkgenError (exit 1)
    +-- InvalidUsageError    (exit 2)
    +-- ConnectionError_     (exit 6)
    +-- SpecParseError       (exit 7)
    +-- UnmappedTagError     (exit 8)
    +-- StaleArtifactsError  (exit 9)
    +-- ConfigError          (exit 1)
"""

from __future__ import annotations

from awkgen.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SPEC_PARSE_ERROR,
    EXIT_STALE_ARTIFACTS,
    EXIT_UNMAPPED_TAG,
)


class AwkgenError(Exception):
    """Base exception for all awkgen errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`awkgen.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(AwkgenError):
    """Raised for invalid CLI arguments, malformed ``--set`` pairs, or a missing required body."""

    exit_code = EXIT_INVALID_USAGE


class ConnectionError_(AwkgenError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class SpecParseError(AwkgenError):
    """Raised when the OpenAPI spec cannot be parsed or fails validation."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class UnmappedTagError(AwkgenError):
    """Raised when one or more spec tags map to no known domain.

    Emission halts before any artifact is written: the naming tables are
    out of date with the API surface.

    Args:
        unmapped: Mapping of each offending tag to the operation ids that
            carry it.
    """

    exit_code = EXIT_UNMAPPED_TAG

    def __init__(self, unmapped: dict[str, list[str]]):
        self.unmapped = unmapped
        details = "; ".join(
            f"'{tag}' (operations: {', '.join(ops)})" for tag, ops in unmapped.items()
        )
        super().__init__(
            f"Tags not mapped to any domain: {details}. "
            "Update the naming tables before generating."
        )


class StaleArtifactsError(AwkgenError):
    """Raised by ``generate --check`` when files on disk differ from a fresh run."""

    exit_code = EXIT_STALE_ARTIFACTS


class ConfigError(AwkgenError):
    """Raised for configuration problems (invalid project file, bad naming-table overrides)."""

    exit_code = EXIT_GENERIC_FAILURE
