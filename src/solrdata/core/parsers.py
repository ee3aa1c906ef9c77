"""Query parsers — Turn abstract query objects into Solr request parameters.

Parsers are looked up by query kind through ``QueryParsers``. The built-in
set covers every ``QueryKind``; callers may replace one or register parsers
for their own kinds.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Hashable, Mapping
from typing import Any

from solrdata.core.exceptions import InvalidArgumentError, UnsupportedQueryKindError
from solrdata.core.named import natural_key, synthetic_key
from solrdata.core.native import SELECT_HANDLER, TERMS_HANDLER, NativeQuery
from solrdata.models.query import FacetOptions, GroupOptions, HighlightOptions, QueryKind, StatsOptions

logger = logging.getLogger(__name__)


_LOCAL_QUOTE_CHARS = frozenset(" \t'\"}\\")


def _local_value(value: Any) -> str:
    text = ("true" if value else "false") if isinstance(value, bool) else str(value)
    if text and not _LOCAL_QUOTE_CHARS.intersection(text):
        return text
    escaped = text.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _local_params(key: str | None, value: str, params: Mapping[str, Any] | None = None) -> str:
    """Prefix *value* with ``{!key=... name=value}`` local parameters.

    Options that must differ between two sub-queries on the same field
    travel here rather than as shared ``f.<field>.*`` parameters. ``None``
    options are left out; without a key or options *value* is returned as is.
    """
    parts = [f"key={key}"] if key else []
    parts.extend(f"{name}={_local_value(v)}" for name, v in (params or {}).items() if v is not None)
    return f"{{!{' '.join(parts)}}}{value}" if parts else value


class QueryParser(ABC):
    """Builds the native request for one query kind."""

    @abstractmethod
    def construct_native_query(self, query: Any) -> NativeQuery:
        """Build the full Solr request for *query*."""

    @abstractmethod
    def get_query_string(self, query: Any) -> str:
        """Render only the main query string (``q``), e.g. for delete-by-query."""


class QueryParserBase(QueryParser):
    """Shared handling of criteria, filters, projection, sorting and paging.

    Grouping and statistics options are honoured on every query that carries
    them; subclasses append their variant-specific sections in
    ``append_variant``.
    """

    def get_query_string(self, query: Any) -> str:
        return query.criteria.to_query_string()

    def construct_native_query(self, query: Any) -> NativeQuery:
        native = NativeQuery(query.request_handler or SELECT_HANDLER)
        native.set("q", self.get_query_string(query))
        native.set("wt", "json")

        self.append_common(native, query)
        if query.group_options is not None:
            self.append_grouping(native, query, query.group_options)
        if query.stats_options is not None:
            self.append_stats(native, query, query.stats_options)
        self.append_variant(native, query)
        return native

    def append_common(self, native: NativeQuery, query: Any) -> None:
        for criteria in query.filter_queries:
            native.add("fq", criteria.to_query_string())
        if query.projection:
            native.set("fl", ",".join(query.projection))
        if query.sort:
            native.set("sort", ", ".join(s.render() for s in query.sort))
        if query.page_request is not None:
            native.set("start", query.page_request.offset)
            native.set("rows", query.page_request.limit)
        if query.default_operator:
            native.set("q.op", query.default_operator)
        if query.def_type:
            native.set("defType", query.def_type)
        if query.timeout_ms is not None:
            native.set("timeAllowed", query.timeout_ms)

    def append_grouping(self, native: NativeQuery, query: Any, options: GroupOptions) -> None:
        if not (options.fields or options.functions or options.queries):
            return

        native.set("group", True)
        for field in options.fields:
            native.add("group.field", natural_key(query, field.name, field))
        for function in options.functions:
            native.add("group.func", natural_key(query, function.name, function))
        for item in options.queries:
            native.add("group.query", natural_key(query, item.name, item))

        if options.limit is not None:
            native.set("group.limit", options.limit)
        if options.offset is not None:
            native.set("group.offset", options.offset)
        if options.sort:
            native.set("group.sort", ", ".join(s.render() for s in options.sort))
        if options.total_count:
            native.set("group.ngroups", True)
        if options.group_main:
            native.set("group.main", True)
        if options.group_facets:
            native.set("group.facet", True)
        if options.truncate_facets:
            native.set("group.truncate", True)

    def append_stats(self, native: NativeQuery, query: Any, options: StatsOptions) -> None:
        if not options.fields:
            return

        native.set("stats", True)
        for field in options.fields:
            key = synthetic_key(query, field, "stats")
            params = {"calcdistinct": True if field.calc_distinct else None}
            native.add("stats.field", _local_params(key, field.name, params))
            # stats.facet has no local-param form
            for facet in field.facets:
                native.add(f"f.{field.name}.stats.facet", facet)
        if options.calc_distinct:
            native.set("stats.calcdistinct", True)

    def append_variant(self, native: NativeQuery, query: Any) -> None:
        """Hook for variant-specific parameters."""


class DefaultQueryParser(QueryParserBase):
    """Parser for plain queries."""


class GroupQueryParser(QueryParserBase):
    def append_variant(self, native: NativeQuery, query: Any) -> None:
        if "group" not in native:
            raise InvalidArgumentError("Group query requires at least one group field, function or query.")


class StatsQueryParser(QueryParserBase):
    def append_variant(self, native: NativeQuery, query: Any) -> None:
        if "stats" not in native:
            raise InvalidArgumentError("Stats query requires at least one stats field.")


class FacetQueryParser(QueryParserBase):
    def append_variant(self, native: NativeQuery, query: Any) -> None:
        options: FacetOptions = query.facet_options
        if not options.has_facets:
            return

        native.set("facet", True)
        native.set("facet.limit", options.limit)
        native.set("facet.mincount", options.min_count)
        native.set("facet.sort", options.sort)
        if options.offset:
            native.set("facet.offset", options.offset)
        if options.missing:
            native.set("facet.missing", True)

        for field in options.fields:
            key = synthetic_key(query, field, "facet")
            native.add("facet.field", _local_params(key, field.name, {"facet.prefix": field.prefix or None}))

        for pivot in options.pivots:
            key = synthetic_key(query, pivot, "pivot")
            native.add("facet.pivot", _local_params(key, pivot.name))

        for facet_range in options.ranges:
            key = synthetic_key(query, facet_range, "range")
            params = {
                "facet.range.start": facet_range.start,
                "facet.range.end": facet_range.end,
                "facet.range.gap": facet_range.gap,
                "facet.range.hardend": True if facet_range.hard_end else None,
                "facet.range.include": facet_range.include,
                "facet.range.other": facet_range.other,
            }
            native.add("facet.range", _local_params(key, facet_range.name, params))

        for item in options.queries:
            key = synthetic_key(query, item, "fquery")
            native.add("facet.query", _local_params(key, item.name))


class HighlightQueryParser(QueryParserBase):
    def append_variant(self, native: NativeQuery, query: Any) -> None:
        options: HighlightOptions = query.highlight_options

        native.set("hl", True)
        if options.fields:
            names = [natural_key(query, field.name, field) for field in options.fields]
            native.set("hl.fl", ",".join(names))
        if options.simple_prefix is not None:
            native.set("hl.simple.pre", options.simple_prefix)
        if options.simple_postfix is not None:
            native.set("hl.simple.post", options.simple_postfix)
        if options.fragsize is not None:
            native.set("hl.fragsize", options.fragsize)
        if options.snippets is not None:
            native.set("hl.snippets", options.snippets)
        if options.query is not None:
            native.set("hl.q", options.query.to_query_string())

        for field in options.fields:
            if field.fragsize is not None:
                native.set(f"f.{field.name}.hl.fragsize", field.fragsize)
            if field.snippets is not None:
                native.set(f"f.{field.name}.hl.snippets", field.snippets)


class TermsQueryParser(QueryParser):
    """Parser for the terms component (``/terms`` handler)."""

    def get_query_string(self, query: Any) -> str:
        return ""

    def construct_native_query(self, query: Any) -> NativeQuery:
        options = query.terms_options
        if not options.fields:
            raise InvalidArgumentError("Terms query requires at least one field.")

        native = NativeQuery(query.request_handler or TERMS_HANDLER)
        native.set("terms", True)
        native.set("wt", "json")
        # Solr's default terms response is a flat [term, count, ...] list
        native.set("json.nl", "map")
        for field in options.fields:
            native.add("terms.fl", field)
        if options.prefix:
            native.set("terms.prefix", options.prefix)
        native.set("terms.limit", options.limit)
        native.set("terms.mincount", options.min_count)
        native.set("terms.sort", options.sort)
        return native


class QueryParsers:
    """Registry mapping a query kind to the parser responsible for it.

    Example:
        >>> parsers = QueryParsers()
        >>> parsers.register_parser("geo", GeoQueryParser())
        >>> parsers.get_for_kind("geo")
    """

    def __init__(self, register_defaults: bool = True) -> None:
        self._parsers: dict[Hashable, QueryParser] = {}
        if register_defaults:
            self._parsers.update(
                {
                    QueryKind.QUERY: DefaultQueryParser(),
                    QueryKind.FACET: FacetQueryParser(),
                    QueryKind.GROUP: GroupQueryParser(),
                    QueryKind.HIGHLIGHT: HighlightQueryParser(),
                    QueryKind.STATS: StatsQueryParser(),
                    QueryKind.TERMS: TermsQueryParser(),
                }
            )

    def register_parser(self, kind: Hashable, parser: QueryParser) -> None:
        """Register (or replace) the parser for *kind*."""
        if kind in self._parsers:
            logger.warning("Overwriting existing query parser registration: %s", kind)
        self._parsers[kind] = parser
        logger.debug("Registered query parser for kind %s: %s", kind, type(parser).__name__)

    def get_for_kind(self, kind: Hashable) -> QueryParser:
        """Return the parser registered for *kind*.

        Raises:
            UnsupportedQueryKindError: If nothing is registered for *kind*.
        """
        try:
            return self._parsers[kind]
        except KeyError:
            raise UnsupportedQueryKindError(
                f"No query parser registered for kind '{kind}'. "
                f"Registered kinds: {[str(k) for k in self._parsers]}"
            ) from None

    def get_for_query(self, query: Any) -> QueryParser:
        kind = getattr(query, "kind", None)
        if kind is None:
            raise UnsupportedQueryKindError(f"Object of type {type(query).__name__} does not declare a query kind.")
        return self.get_for_kind(kind)

    @property
    def registered_kinds(self) -> list[Hashable]:
        return list(self._parsers)
