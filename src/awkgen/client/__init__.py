"""Runtime support imported by generated clients and CLIs.

* :mod:`~awkgen.client.api_client` -- :class:`ApiClient` (request
  pipeline, 429 retry, trace ids) and :class:`ResponseEnvelope`.
* :mod:`~awkgen.client.commands` -- body/query assembly and envelope
  printing for generated typer handlers.
"""

from awkgen.client.api_client import ApiClient, ResponseEnvelope

__all__ = ["ApiClient", "ResponseEnvelope"]
