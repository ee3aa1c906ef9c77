"""Exception translator — Maps transport and Solr failures to data-access errors.

The translator never raises and never swallows: it returns a typed
``SolrDataError`` when it recognises the failure and ``None`` otherwise,
leaving the fallback wrapping to ``SolrTemplate.execute``.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from solrdata.core.exceptions import InvalidArgumentError, SolrDataError, TransportError

# Status codes that mean "Solr (or the proxy in front of it) is not serving"
_UNAVAILABLE_STATUS = frozenset({404, 502, 503, 504})


class SolrExceptionTranslator:
    """Translate exceptions raised while talking to Solr."""

    def translate(self, exc: BaseException) -> SolrDataError | None:
        """Return the data-access error matching *exc*, or ``None``."""
        if isinstance(exc, SolrDataError):
            return exc

        if isinstance(exc, httpx.TimeoutException):
            return TransportError(f"Request to Solr timed out: {exc}")

        if isinstance(exc, httpx.HTTPStatusError):
            status = exc.response.status_code
            message = self._solr_error_message(exc.response) or str(exc)
            if status == 400:
                return InvalidArgumentError(f"Solr rejected the request: {message}")
            if status in _UNAVAILABLE_STATUS:
                return TransportError(f"Solr unavailable (HTTP {status}): {message}")
            return None

        if isinstance(exc, httpx.TransportError):
            return TransportError(f"Failed to reach Solr: {exc}")

        if isinstance(exc, json.JSONDecodeError):
            return TransportError(f"Could not decode Solr response: {exc}")

        return None

    @staticmethod
    def _solr_error_message(response: httpx.Response) -> str | None:
        """Pull ``error.msg`` out of a Solr error body, if there is one."""
        try:
            body: Any = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("msg"):
                return str(error["msg"])
        return None


EXCEPTION_TRANSLATOR = SolrExceptionTranslator()
