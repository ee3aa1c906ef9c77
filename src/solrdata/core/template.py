"""Solr template — Typed data access over a Solr core.

The template is the only component that talks to Solr. Every remote call
goes through ``execute``, which obtains a client from the client factory
and translates failures into ``SolrDataError`` subclasses.

Pipeline for page queries:
    query → [QueryParsers] → NativeQuery
          → [execute] → raw JSON response
          → [results] → SolrResultPage (facets / groups / highlights / stats)

Usage::

    with SolrTemplate.from_settings(Settings()) as template:
        page = template.query_for_page(SimpleQuery(criteria=Criteria.where("title").is_("dune")), Book)
        for book in page:
            ...
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import BaseModel

from solrdata.config.settings import TemplateSettings
from solrdata.convert.converter import (
    DocumentConverter,
    EntityMetadata,
    PydanticDocumentConverter,
    PydanticEntityMetadata,
)
from solrdata.core import results
from solrdata.core.client import ClientFactory, HttpSolrClientFactory, SolrClient
from solrdata.core.cursor import DelegatingCursor, PartialResult
from solrdata.core.exceptions import (
    InvalidArgumentError,
    UncategorizedRemoteError,
    UnsupportedOperationError,
)
from solrdata.core.named import NamedObjectsQuery
from solrdata.core.native import NativeQuery
from solrdata.core.parsers import QueryParser, QueryParsers
from solrdata.core.translator import EXCEPTION_TRANSLATOR, SolrExceptionTranslator
from solrdata.models.page import SolrResultPage, TermsPage
from solrdata.models.query import PageRequest, TermsQuery

if TYPE_CHECKING:
    from solrdata.config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Solr major version that introduced soft commits
_SOFT_COMMIT_SINCE = 4


class SolrTemplate:
    """Executes abstract queries against Solr and reassembles typed pages.

    All collaborators are fixed at construction and read-only afterwards,
    so one template may be shared by concurrent callers as long as the
    client factory's clients are thread-safe (the default ``httpx`` client
    is).

    Args:
        client_factory: Hands out a ``SolrClient`` per call.
        converter: Document converter; defaults to pydantic-model conversion.
        metadata: Entity metadata; defaults to pydantic-model inspection.
        core: Core to target; ``None`` uses the factory's default.
        parsers: Parser registry; defaults to the built-in parsers.
        translator: Exception translator applied in ``execute``.
        config: Immutable template settings.
        solr_version: Solr server version, used to gate soft commits.
        unique_key: Schema unique key (highlights, cursors).
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        converter: DocumentConverter | None = None,
        metadata: EntityMetadata | None = None,
        *,
        core: str | None = None,
        parsers: QueryParsers | None = None,
        translator: SolrExceptionTranslator | None = None,
        config: TemplateSettings | None = None,
        solr_version: str = "9.0",
        unique_key: str = "id",
    ) -> None:
        if client_factory is None:
            raise InvalidArgumentError("Client factory must not be None.")

        self._client_factory = client_factory
        self._converter = converter or PydanticDocumentConverter()
        self._metadata = metadata or PydanticEntityMetadata()
        self._core = core
        self._parsers = parsers or QueryParsers()
        self._translator = translator or EXCEPTION_TRANSLATOR
        self._config = config or TemplateSettings()
        self._solr_version = solr_version
        self._unique_key = unique_key

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.BaseTransport | None = None) -> SolrTemplate:
        """Wire a template from application settings.

        Args:
            settings: Root settings (Solr connection and template options).
            transport: Optional ``httpx`` transport for the client factory.
        """
        factory = HttpSolrClientFactory.from_settings(settings.solr, transport=transport)
        return cls(
            factory,
            core=settings.solr.core,
            config=settings.template,
            solr_version=settings.solr.version,
            unique_key=settings.solr.unique_key,
        )

    def __enter__(self) -> SolrTemplate:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the client factory's connections, if it holds any."""
        close = getattr(self._client_factory, "close", None)
        if callable(close):
            close()

    # ── Accessors ────────────────────────────────────────────────────────

    @property
    def converter(self) -> DocumentConverter:
        return self._converter

    @property
    def core(self) -> str | None:
        return self._core

    @property
    def config(self) -> TemplateSettings:
        return self._config

    @property
    def schema_features(self) -> frozenset[str]:
        return self._config.schema_features

    def get_client(self) -> SolrClient:
        return self._client_factory.get_client(self._core)

    def register_query_parser(self, kind: Any, parser: QueryParser) -> None:
        """Register (or replace) the parser for a query kind."""
        self._parsers.register_parser(kind, parser)

    # ── Execution core ───────────────────────────────────────────────────

    def execute(self, action: Callable[[SolrClient], R]) -> R:
        """Run *action* with a client, translating any failure.

        Raises:
            SolrDataError: The translated failure, or
                ``UncategorizedRemoteError`` when no translation applies.
        """
        if action is None:
            raise InvalidArgumentError("Action must not be None.")

        try:
            client = self.get_client()
            return action(client)
        except Exception as e:
            resolved = self._translator.translate(e)
            if resolved is e:
                raise
            if resolved is not None:
                raise resolved from e
            raise UncategorizedRemoteError(str(e), e) from e

    def execute_query(self, native: NativeQuery | Iterable[tuple[str, Any]] | Mapping[str, Any]) -> dict[str, Any]:
        """Send prepared parameters to Solr and return the raw response."""
        params: Any = dict(native) if isinstance(native, Mapping) else native
        return self.execute(lambda client: client.query(params))

    def query_raw(self, params: NativeQuery | Iterable[tuple[str, Any]] | Mapping[str, Any]) -> dict[str, Any]:
        """Run caller-built Solr parameters as-is."""
        if params is None:
            raise InvalidArgumentError("Params must not be None.")
        return self.execute_query(params)

    def construct_native_query(self, query: Any) -> NativeQuery:
        return self._parsers.get_for_query(query).construct_native_query(query)

    def query(self, query: Any, target_type: type | None) -> dict[str, Any]:
        """Build, log and execute *query*; return the raw response.

        ``score`` is added to the field list when *target_type* declares a
        score property.
        """
        if query is None:
            raise InvalidArgumentError("Query must not be None.")

        native = self.construct_native_query(query)
        if target_type is not None and self._metadata.has_score_property(target_type):
            self._include_score(native)

        logger.debug("Executing query '%s' against solr.", native)
        return self.execute_query(native)

    @staticmethod
    def _include_score(native: NativeQuery) -> None:
        fields = native.get("fl")
        if not fields:
            native.set("fl", "*,score")
        elif "score" not in [f.strip() for f in fields.split(",")]:
            native.set("fl", f"{fields},score")

    # ── Conversion ───────────────────────────────────────────────────────

    def convert_bean_to_document(self, bean: Any) -> dict[str, Any]:
        return self._converter.write(bean)

    def convert_documents(self, documents: list[dict[str, Any]], target_type: type[T]) -> list[T]:
        if not documents:
            return []
        return self._converter.read_all(documents, target_type)

    def convert_response(self, response: Mapping[str, Any] | None, target_type: type[T]) -> list[T]:
        return self.convert_documents(results.documents(response), target_type)

    # ── Page queries ─────────────────────────────────────────────────────

    def query_for_object(self, query: Any, target_type: type[T]) -> T | None:
        """Return the first match, or ``None``.

        Matching more than one document is not an error: a warning is logged
        and the first entry is returned.
        """
        self._require(query, target_type)

        single = query.model_copy(update={"page_request": PageRequest(offset=0, limit=1)})
        response = self.query(single, target_type)
        docs = results.documents(response)
        if not docs:
            return None
        if len(docs) > 1 or results.num_found(response) > 1:
            logger.warning(
                "More than 1 result found for single result query ('%s'), returning first entry in list",
                self._parsers.get_for_query(query).get_query_string(query),
            )
        return self.convert_documents(docs[:1], target_type)[0]

    def query_for_page(self, query: Any, target_type: type[T]) -> SolrResultPage:
        self._require(query, target_type)
        return self._do_query_for_page(query, target_type)

    def query_for_group_page(self, query: Any, target_type: type[T]) -> SolrResultPage:
        self._require(query, target_type)
        return self._do_query_for_page(query, target_type)

    def query_for_stats_page(self, query: Any, target_type: type[T]) -> SolrResultPage:
        self._require(query, target_type)
        return self._do_query_for_page(query, target_type)

    def query_for_facet_page(self, query: Any, target_type: type[T]) -> SolrResultPage:
        self._require(query, target_type)

        named = NamedObjectsQuery(query)
        response = self.query(named, target_type)
        names = named.names_association
        page = self.create_page(query, target_type, response, names)

        page.facet_fields = results.convert_facet_fields(query, response, names)
        page.facet_pivots = results.convert_facet_pivots(query, response, names)
        page.facet_ranges = results.convert_facet_ranges(query, response, names)
        page.facet_queries = results.convert_facet_queries(query, response, names)
        return page

    def query_for_highlight_page(self, query: Any, target_type: type[T]) -> SolrResultPage:
        self._require(query, target_type)

        named = NamedObjectsQuery(query)
        response = self.query(named, target_type)
        page = self.create_page(query, target_type, response, named.names_association)

        page.highlighted = results.convert_highlights(response, page.content, self._unique_key)
        return page

    def query_for_terms_page(self, query: TermsQuery) -> TermsPage:
        if query is None:
            raise InvalidArgumentError("Query must not be None.")
        response = self.query(query, None)
        return TermsPage(terms=results.convert_terms(response))

    def _do_query_for_page(self, query: Any, target_type: type[T]) -> SolrResultPage:
        named = NamedObjectsQuery(query)
        response = self.query(named, target_type)
        return self.create_page(query, target_type, response, named.names_association)

    def create_page(
        self,
        query: Any,
        target_type: type[T],
        response: Mapping[str, Any] | None,
        names: Mapping[str, Any],
    ) -> SolrResultPage:
        """Assemble the page shared by all ``query_for_*`` variants.

        Documents, ``numFound``/``maxScore``, stats and groups are filled in
        here; facet and highlight payloads are added by their callers.
        """
        page_request = getattr(query, "page_request", None)
        page = SolrResultPage(
            content=self.convert_response(response, target_type),
            offset=page_request.offset if page_request else 0,
            limit=page_request.limit if page_request else None,
            total_elements=results.num_found(response),
            max_score=results.max_score(response),
        )
        if response:
            page.field_stats = results.convert_field_stats(query, response, names)
            page.group_results = results.convert_groups(
                query,
                response,
                names,
                lambda docs: self.convert_documents(docs, target_type),
            )
        return page

    # ── Cursor ───────────────────────────────────────────────────────────

    def query_for_cursor(self, query: Any, target_type: type[T]) -> DelegatingCursor:
        """Open a cursor streaming every match of *query*.

        The query's page size (or ``cursor_batch_size``) sets the batch size.
        """
        self._require(query, target_type)

        native = self.construct_native_query(query)
        if "rows" not in native:
            native.set("rows", self._config.cursor_batch_size)
        if self._metadata.has_score_property(target_type):
            self._include_score(native)

        def load(request: NativeQuery) -> PartialResult:
            response = self.execute_query(request)
            if not response:
                return PartialResult(next_cursor_mark="", items=[])
            return PartialResult(
                next_cursor_mark=response.get("nextCursorMark"),
                items=self.convert_response(response, target_type),
                total=results.num_found(response) if results.document_section(response) is not None else None,
            )

        return DelegatingCursor(native, load, unique_key=self._unique_key).open()

    # ── Counting and fetching ────────────────────────────────────────────

    def count(self, query: Any) -> int:
        """Number of documents matching *query*, without fetching any."""
        if query is None:
            raise InvalidArgumentError("Query must not be None.")

        native = self.construct_native_query(query)
        native.set("start", 0)
        native.set("rows", 0)
        return results.num_found(self.execute_query(native))

    def get_by_ids(self, ids: Iterable[Any], target_type: type[T]) -> list[T]:
        """Real-time get: fetch documents by id, bypassing the searcher."""
        if ids is None:
            raise InvalidArgumentError("Ids must not be None.")
        id_list = [str(i) for i in ids]
        if not id_list:
            return []

        response = self.execute(lambda client: client.realtime_get(id_list))
        return self.convert_response(response, target_type)

    def get_by_id(self, id: Any, target_type: type[T]) -> T | None:
        if id is None:
            raise InvalidArgumentError("Id must not be None.")
        found = self.get_by_ids([id], target_type)
        return found[0] if found else None

    # ── Updates ──────────────────────────────────────────────────────────

    def save_bean(self, bean: Any, commit_within: int = -1) -> dict[str, Any]:
        """Index a single entity.

        Args:
            bean: The entity; collections are rejected, use ``save_beans``.
            commit_within: Commit window in ms; -1 waits for an explicit commit.
        """
        self._assert_no_collection(bean)
        document = self.convert_bean_to_document(bean)
        return self.execute(lambda client: client.add([document], commit_within))

    def save_beans(self, beans: Iterable[Any], commit_within: int = -1) -> dict[str, Any]:
        if beans is None:
            raise InvalidArgumentError("Beans must not be None.")
        if isinstance(beans, (BaseModel, Mapping, str, bytes)) or not isinstance(beans, Iterable):
            raise InvalidArgumentError(
                f"Expected a collection of beans, got a single {type(beans).__name__}; use save_bean."
            )
        documents = [self.convert_bean_to_document(bean) for bean in beans]
        return self.execute(lambda client: client.add(documents, commit_within))

    def save_document(self, document: Mapping[str, Any], commit_within: int = -1) -> dict[str, Any]:
        if document is None:
            raise InvalidArgumentError("Document must not be None.")
        return self.execute(lambda client: client.add([dict(document)], commit_within))

    def save_documents(self, documents: Iterable[Mapping[str, Any]], commit_within: int = -1) -> dict[str, Any]:
        if documents is None:
            raise InvalidArgumentError("Documents must not be None.")
        docs = [dict(d) for d in documents]
        return self.execute(lambda client: client.add(docs, commit_within))

    def delete(self, query: Any) -> dict[str, Any]:
        """Delete every document matching *query*."""
        if query is None:
            raise InvalidArgumentError("Query must not be None.")
        query_string = self._parsers.get_for_query(query).get_query_string(query)
        return self.execute(lambda client: client.delete_by_query(query_string))

    def delete_by_id(self, ids: str | Iterable[str]) -> dict[str, Any]:
        """Delete one id or a batch of ids; unknown ids are ignored by Solr."""
        if ids is None:
            raise InvalidArgumentError("Cannot delete 'None' id.")
        to_delete = [ids] if isinstance(ids, str) else list(ids)
        if any(i is None for i in to_delete):
            raise InvalidArgumentError("Cannot delete 'None' id.")
        to_delete = [str(i) for i in to_delete]
        return self.execute(lambda client: client.delete_by_id(to_delete))

    def commit(self) -> None:
        self.execute(lambda client: client.commit())

    def soft_commit(self) -> None:
        """Make recent updates visible without flushing to stable storage.

        Raises:
            UnsupportedOperationError: If the Solr version predates soft commits.
        """
        major = self._solr_major_version()
        if major < _SOFT_COMMIT_SINCE:
            raise UnsupportedOperationError(
                f"Soft commit is not available for Solr version {self._solr_version} (requires 4.x or later)."
            )
        self.execute(lambda client: client.commit(soft_commit=True))

    def rollback(self) -> None:
        self.execute(lambda client: client.rollback())

    # ── Admin ────────────────────────────────────────────────────────────

    def ping(self) -> dict[str, Any]:
        return self.execute(lambda client: client.ping())

    def get_schema_name(self) -> str | None:
        return self.execute(lambda client: client.schema_name())

    # ── Helpers ──────────────────────────────────────────────────────────

    def _solr_major_version(self) -> int:
        head = self._solr_version.split(".", 1)[0]
        return int(head) if head.isdigit() else 0

    @staticmethod
    def _require(query: Any, target_type: Any) -> None:
        if query is None:
            raise InvalidArgumentError("Query must not be None.")
        if target_type is None:
            raise InvalidArgumentError("Target type must not be None.")

    @staticmethod
    def _assert_no_collection(obj: Any) -> None:
        if obj is None:
            raise InvalidArgumentError("Object to save must not be None.")
        if isinstance(obj, (list, tuple, set, frozenset, Iterator)):
            raise InvalidArgumentError("Collections are not supported for this operation.")

