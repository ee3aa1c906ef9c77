"""Solr HTTP client — Thin synchronous wrapper over Solr's request handlers.

The client does no error translation: ``httpx`` exceptions (including
``HTTPStatusError`` from ``raise_for_status``) propagate unchanged so that
``SolrTemplate.execute`` can translate them in one place.

Usage::

    factory = HttpSolrClientFactory("http://localhost:8983/solr", core="documents")
    client = factory.get_client()
    data = client.query(native_query)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol, cast

import httpx

from solrdata.core.native import SELECT_HANDLER, NativeQuery

if TYPE_CHECKING:
    from solrdata.config.settings import SolrSettings

logger = logging.getLogger(__name__)

UPDATE_HANDLER = "/update"
REALTIME_GET_HANDLER = "/get"
PING_HANDLER = "/admin/ping"
SCHEMA_NAME_HANDLER = "/schema/name"


class SolrClient:
    """Synchronous client bound to one Solr core.

    Args:
        http: Shared ``httpx.Client`` whose ``base_url`` points at Solr.
        core: Core/collection name, or ``None`` when ``base_url`` already
            includes it.
    """

    def __init__(self, http: httpx.Client, core: str | None = None) -> None:
        self._http = http
        self.core = core

    def _path(self, handler: str) -> str:
        return f"/{self.core}{handler}" if self.core else handler

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        response.raise_for_status()
        return cast(dict[str, Any], response.json())

    # ── Search ───────────────────────────────────────────────────────────

    def query(
        self,
        params: NativeQuery | Iterable[tuple[str, Any]] | dict[str, Any],
        handler: str | None = None,
    ) -> dict[str, Any]:
        """Run a request against a search handler and return the decoded body."""
        if isinstance(params, NativeQuery):
            handler = handler or params.handler
            params = params.to_params()
        elif isinstance(params, dict):
            params = list(params.items())
        resp = self._http.get(self._path(handler or SELECT_HANDLER), params=list(params))
        return self._json(resp)

    def realtime_get(self, ids: Iterable[str]) -> dict[str, Any]:
        """Fetch documents by id through the real-time get handler."""
        resp = self._http.get(
            self._path(REALTIME_GET_HANDLER),
            params={"ids": ",".join(str(i) for i in ids), "wt": "json"},
        )
        return self._json(resp)

    # ── Updates ──────────────────────────────────────────────────────────

    def _update(self, body: Any, params: dict[str, Any] | None = None) -> dict[str, Any]:
        resp = self._http.post(
            self._path(UPDATE_HANDLER),
            json=body,
            params={"wt": "json", **(params or {})},
        )
        return self._json(resp)

    def add(self, documents: list[dict[str, Any]], commit_within: int = -1) -> dict[str, Any]:
        """Index *documents*; a non-negative *commit_within* (ms) schedules a commit."""
        params = {"commitWithin": commit_within} if commit_within >= 0 else None
        return self._update(documents, params)

    def delete_by_id(self, ids: list[str]) -> dict[str, Any]:
        return self._update({"delete": ids})

    def delete_by_query(self, query: str) -> dict[str, Any]:
        return self._update({"delete": {"query": query}})

    def commit(self, soft_commit: bool = False) -> dict[str, Any]:
        body: dict[str, Any] = {"waitSearcher": True}
        if soft_commit:
            body["softCommit"] = True
        return self._update({"commit": body})

    def rollback(self) -> dict[str, Any]:
        return self._update({"rollback": {}})

    # ── Admin ────────────────────────────────────────────────────────────

    def ping(self) -> dict[str, Any]:
        resp = self._http.get(self._path(PING_HANDLER), params={"wt": "json"})
        return self._json(resp)

    def schema_name(self) -> str | None:
        resp = self._http.get(self._path(SCHEMA_NAME_HANDLER), params={"wt": "json"})
        name = self._json(resp).get("name")
        return str(name) if name is not None else None


class ClientFactory(Protocol):
    """Anything able to hand out a client for a core."""

    def get_client(self, core: str | None = None) -> SolrClient: ...


class HttpSolrClientFactory:
    """Creates ``SolrClient`` instances sharing one ``httpx.Client``.

    Args:
        base_url: Solr base URL, e.g. ``"http://localhost:8983/solr"``.
        core: Default core used when ``get_client`` is called without one.
        username: Optional basic-auth username.
        password: Optional basic-auth password.
        timeout: HTTP request timeout in seconds.
        transport: Optional ``httpx`` transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8983/solr",
        core: str | None = None,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        auth = None
        if username and password:
            auth = httpx.BasicAuth(username, password)

        self.base_url = base_url.rstrip("/")
        self.default_core = core
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            auth=auth,
            transport=transport,
        )
        self._clients: dict[str | None, SolrClient] = {}
        logger.info("Created Solr client factory for %s (default core: %s)", self.base_url, core)

    @classmethod
    def from_settings(cls, settings: SolrSettings, transport: httpx.BaseTransport | None = None) -> HttpSolrClientFactory:
        return cls(
            base_url=settings.base_url,
            core=settings.core,
            username=settings.username,
            password=settings.password,
            timeout=settings.timeout,
            transport=transport,
        )

    def get_client(self, core: str | None = None) -> SolrClient:
        core = core or self.default_core
        client = self._clients.get(core)
        if client is None:
            client = SolrClient(self._http, core)
            self._clients[core] = client
        return client

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._http.close()
        self._clients.clear()
