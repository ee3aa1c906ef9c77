"""Data-access exceptions raised by the Solr template."""

from __future__ import annotations


class SolrDataError(Exception):
    """Base exception for all solrdata errors."""


class UnsupportedQueryKindError(SolrDataError):
    """Raised when no parser is registered for a query kind."""


class UnsupportedOperationError(SolrDataError):
    """Raised when the configured Solr version does not offer an operation."""


class TransportError(SolrDataError):
    """Raised when Solr cannot be reached or its response cannot be decoded."""


class InvalidArgumentError(SolrDataError, ValueError):
    """Raised when a caller passes a missing or malformed argument."""


class UncategorizedRemoteError(SolrDataError):
    """Raised for remote failures the translator does not recognise.

    The original exception is kept as ``cause`` (and as ``__cause__`` when
    raised with ``from``).
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
