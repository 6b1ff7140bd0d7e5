"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~awkgen.exceptions.AwkgenError` subclass.
Build scripts can inspect the exit code to tell a stale naming table
apart from a broken spec without parsing stderr.

Example::

    $ awkgen generate openapi.json -o generated/
    $ echo $?
    8   # EXIT_UNMAPPED_TAG -- the spec has a tag the naming tables do not know
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_SPEC_PARSE_ERROR = 7
"""The OpenAPI specification could not be parsed or validated."""

EXIT_UNMAPPED_TAG = 8
"""The spec declares a tag that no domain in the naming tables covers."""

EXIT_STALE_ARTIFACTS = 9
"""``generate --check`` found generated files that differ from a fresh run."""
