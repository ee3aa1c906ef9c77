"""Integration test fixtures — Docker-based Solr with seed data.

Expects Solr to be running with a ``documents`` core, e.g.:
    docker run -d -p 8983:8983 solr:9 solr-precreate documents

Seed data is loaded through the template on first use.
"""

from __future__ import annotations

import contextlib
import time
from collections.abc import Iterator
from typing import Any

import httpx
import pytest
from pydantic import BaseModel

from solrdata.config.settings import Settings
from solrdata.core.template import SolrTemplate
from solrdata.models.query import SimpleQuery

SOLR_HOST = "http://localhost:8983/solr"
SOLR_CORE = "documents"


class Paper(BaseModel):
    id: str
    title: str
    author: str | None = None
    tags: list[str] = []
    year: int | None = None
    score: float | None = None


MOCK_PAPERS: list[Paper] = [
    Paper(id="doc-001", title="Advances in Solar Nowcasting Using Deep Learning", author="Alice Johnson", tags=["solar energy", "deep learning"], year=2024),
    Paper(id="doc-002", title="Transformer Models for Natural Language Understanding", author="Bob Smith", tags=["NLP", "transformers"], year=2023),
    Paper(id="doc-003", title="Federated Learning for Privacy-Preserving Medical Imaging", author="Carol Zhang", tags=["federated learning", "privacy"], year=2024),
    Paper(id="doc-004", title="Reinforcement Learning for Robotic Manipulation", author="David Lee", tags=["reinforcement learning", "robotics"], year=2022),
    Paper(id="doc-005", title="Graph Neural Networks for Drug Discovery", author="Eve Brown", tags=["graph neural networks", "drug discovery"], year=2023),
]

_SCHEMA_FIELDS: list[dict[str, Any]] = [
    {"name": "title", "type": "text_general", "stored": True, "multiValued": False},
    {"name": "author", "type": "string", "stored": True},
    {"name": "tags", "type": "strings", "stored": True},
    {"name": "year", "type": "pint", "stored": True},
]


def _wait_for_service(url: str, timeout: float = 90.0) -> bool:
    """Block until *url* returns HTTP 200, or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            r = httpx.get(url, timeout=30)
            if r.status_code == 200:
                return True
        except httpx.HTTPError:
            pass
        time.sleep(2)
    return False


def _ensure_schema(host: str, core: str) -> None:
    with httpx.Client(base_url=host, timeout=30) as client:
        for field in _SCHEMA_FIELDS:
            # Field may already exist from a previous run
            with contextlib.suppress(httpx.HTTPError):
                client.post(f"/{core}/schema", json={"add-field": field})


@pytest.fixture(scope="session")
def solr_ready() -> str:
    """Ensure Solr is running and its schema has the test fields."""
    if not _wait_for_service(f"{SOLR_HOST}/{SOLR_CORE}/admin/ping"):
        pytest.skip(f"Solr not available at {SOLR_HOST}")
    _ensure_schema(SOLR_HOST, SOLR_CORE)
    return SOLR_HOST


@pytest.fixture
def solr_template(solr_ready: str) -> Iterator[SolrTemplate]:
    """Template against the live core, reseeded with ``MOCK_PAPERS`` for every test."""
    settings = Settings(
        _env_file=None,  # type: ignore[call-arg]
        solr={"base_url": solr_ready, "core": SOLR_CORE},
    )
    with SolrTemplate.from_settings(settings) as template:
        template.delete(SimpleQuery())
        template.save_beans(MOCK_PAPERS)
        template.commit()
        yield template
