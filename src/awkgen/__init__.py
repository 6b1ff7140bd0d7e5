"""awkgen -- Generate DTOs, a typed client, and a Typer CLI from an OpenAPI spec.

The package reads an OpenAPI 3.x document and produces three coupled Python
modules: pydantic data transfer objects, an HTTP client with one method per
operation, and a command tree that exposes every operation as a subcommand
grouped by domain and sub-branch.

Typical workflow::

    awkgen generate openapi.json -o src/awork_cli/generated
    awkgen inspect commands openapi.json

The naming and grouping engine is table driven. The default tables target
the awork API; alternative tables can be supplied as JSON or YAML.

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic descriptors shared across the pipeline.
    config: Generator settings and naming-table overrides.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.3.0"
