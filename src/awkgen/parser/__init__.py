"""Spec parsing -- load the document, resolve schemas, collect operations.

Typical usage::

    from awkgen.parser import OperationCollector, SchemaResolver, load_spec

    raw = load_spec("openapi.json")
    operations = OperationCollector(SchemaResolver(raw)).collect(raw.get("paths"))

Sub-modules:

* :mod:`~awkgen.parser.loader` -- URL / file / stdin I/O and version checks.
* :mod:`~awkgen.parser.resolver` -- ``$ref`` lookup, ``allOf`` merging, and
  property classification.
* :mod:`~awkgen.parser.collector` -- one
  :class:`~awkgen.models.OperationDescriptor` per operation.
"""

from awkgen.parser.collector import OperationCollector
from awkgen.parser.loader import load_spec, parse_document, validate_openapi_version
from awkgen.parser.resolver import SchemaResolver, ref_name

__all__ = [
    "OperationCollector",
    "SchemaResolver",
    "load_spec",
    "parse_document",
    "ref_name",
    "validate_openapi_version",
]
