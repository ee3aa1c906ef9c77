"""Shared test fixtures and configuration."""

from __future__ import annotations

import re
from typing import Any

import pytest
from pydantic import BaseModel

from solrdata.config.settings import Settings
from solrdata.core.native import NativeQuery
from solrdata.core.template import SolrTemplate


class Book(BaseModel):
    """Sample entity used across tests."""

    id: str
    title: str
    author: str | None = None
    genre: str | None = None
    tags: list[str] = []
    score: float | None = None


class Tag(BaseModel):
    """Entity without a score property."""

    id: str
    name: str


_FIELD_QUERY = re.compile(r"^(-?)([\w.]+):(.+)$")


def _unescape(value: str) -> str:
    value = value.strip('"')
    return re.sub(r"\\(.)", r"\1", value)


class FakeSolrClient:
    """In-memory stand-in for ``SolrClient``.

    Updates are queued until ``commit`` unless a non-negative commit window
    is given; queries support ``*:*``, ``field:value`` and ``-field:value``,
    paging and ``cursorMark``. Canned responses queued in ``responses`` are
    returned by ``query`` before falling back to the in-memory index.
    """

    def __init__(self) -> None:
        self.committed: dict[str, dict[str, Any]] = {}
        self.pending: list[tuple[str, Any]] = []
        self.responses: list[Any] = []
        self.requests: list[NativeQuery | list[tuple[str, Any]]] = []
        self.calls: list[str] = []

    # ── Search ──

    def query(self, params: Any, handler: str | None = None) -> dict[str, Any]:
        self.calls.append("query")
        self.requests.append(params)
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, BaseException):
                raise response
            return response

        pairs = params.to_params() if isinstance(params, NativeQuery) else list(params)
        values: dict[str, list[str]] = {}
        for name, value in pairs:
            values.setdefault(name, []).append(str(value))

        docs = [d for d in self._sorted_docs() if self._matches(d, values.get("q", ["*:*"])[0])]
        for fq in values.get("fq", []):
            docs = [d for d in docs if self._matches(d, fq)]
        total = len(docs)
        rows = int(values.get("rows", ["10"])[0])

        if "cursorMark" in values:
            mark = values["cursorMark"][0]
            if mark != "*":
                docs = [d for d in docs if d["id"] > mark]
            batch = docs[:rows]
            next_mark = batch[-1]["id"] if batch else mark
            return {"response": {"numFound": total, "start": 0, "docs": batch}, "nextCursorMark": next_mark}

        start = int(values.get("start", ["0"])[0])
        return {"response": {"numFound": total, "start": start, "docs": docs[start : start + rows]}}

    def realtime_get(self, ids: Any) -> dict[str, Any]:
        self.calls.append("realtime_get")
        visible = dict(self.committed)
        for op, payload in self.pending:
            if op == "add":
                for doc in payload:
                    visible[doc["id"]] = doc
        docs = [visible[i] for i in ids if i in visible]
        return {"response": {"numFound": len(docs), "start": 0, "docs": docs}}

    # ── Updates ──

    def add(self, documents: list[dict[str, Any]], commit_within: int = -1) -> dict[str, Any]:
        self.calls.append("add")
        self.pending.append(("add", [dict(d) for d in documents]))
        if commit_within >= 0:
            self._apply()
        return {"responseHeader": {"status": 0}}

    def delete_by_id(self, ids: list[str]) -> dict[str, Any]:
        self.calls.append("delete_by_id")
        self.pending.append(("delete_ids", list(ids)))
        return {"responseHeader": {"status": 0}}

    def delete_by_query(self, query: str) -> dict[str, Any]:
        self.calls.append("delete_by_query")
        self.pending.append(("delete_query", query))
        return {"responseHeader": {"status": 0}}

    def commit(self, soft_commit: bool = False) -> dict[str, Any]:
        self.calls.append("soft_commit" if soft_commit else "commit")
        self._apply()
        return {"responseHeader": {"status": 0}}

    def rollback(self) -> dict[str, Any]:
        self.calls.append("rollback")
        self.pending.clear()
        return {"responseHeader": {"status": 0}}

    # ── Admin ──

    def ping(self) -> dict[str, Any]:
        self.calls.append("ping")
        return {"status": "OK"}

    def schema_name(self) -> str | None:
        self.calls.append("schema_name")
        return "books-schema"

    # ── Internals ──

    def _apply(self) -> None:
        for op, payload in self.pending:
            if op == "add":
                for doc in payload:
                    self.committed[doc["id"]] = doc
            elif op == "delete_ids":
                for doc_id in payload:
                    self.committed.pop(doc_id, None)
            else:
                for doc_id in [i for i, d in self.committed.items() if self._matches(d, payload)]:
                    del self.committed[doc_id]
        self.pending.clear()

    def _sorted_docs(self) -> list[dict[str, Any]]:
        return [self.committed[k] for k in sorted(self.committed)]

    @staticmethod
    def _matches(doc: dict[str, Any], q: str) -> bool:
        if q == "*:*":
            return True
        match = _FIELD_QUERY.match(q)
        if not match:
            return False
        negated, field, raw = match.groups()
        value = doc.get(field)
        values = value if isinstance(value, list) else [value]
        hit = _unescape(raw) in [str(v) for v in values]
        return not hit if negated else hit


class FakeClientFactory:
    def __init__(self, client: FakeSolrClient) -> None:
        self.client = client
        self.requested_cores: list[str | None] = []

    def get_client(self, core: str | None = None) -> FakeSolrClient:
        self.requested_cores.append(core)
        return self.client


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        solr={"base_url": "http://solr.test/solr", "core": "books"},
    )


@pytest.fixture
def fake_client() -> FakeSolrClient:
    return FakeSolrClient()


@pytest.fixture
def client_factory(fake_client: FakeSolrClient) -> FakeClientFactory:
    return FakeClientFactory(fake_client)


@pytest.fixture
def template(client_factory: FakeClientFactory) -> SolrTemplate:
    return SolrTemplate(client_factory, core="books")


@pytest.fixture
def books() -> list[Book]:
    return [
        Book(id="b1", title="Dune", author="Frank Herbert", genre="scifi", tags=["classic"]),
        Book(id="b2", title="Emma", author="Jane Austen", genre="romance"),
        Book(id="b3", title="Neuromancer", author="William Gibson", genre="scifi"),
    ]


@pytest.fixture
def sample_docs() -> list[dict[str, Any]]:
    return [
        {"id": "b1", "title": ["Dune"], "author": "Frank Herbert", "tags": ["classic"], "score": 3.5},
        {"id": "b3", "title": "Neuromancer", "author": "William Gibson", "score": 1.25},
    ]
