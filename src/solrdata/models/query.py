"""Query models — Abstract, engine-independent query objects.

Every query class declares its ``kind``; the template looks up the parser
registered for that kind to build the Solr request. Queries and all their
sub-specifications are frozen: derive variants with ``model_copy(update=...)``.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

from solrdata.models.criteria import Criteria


class QueryKind(str, Enum):
    """Query variants with a built-in parser."""

    QUERY = "query"
    FACET = "facet"
    GROUP = "group"
    HIGHLIGHT = "highlight"
    STATS = "stats"
    TERMS = "terms"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Pagination and sorting
# ═══════════════════════════════════════════════════════════════════════════════


class PageRequest(_Frozen):
    """Offset/limit pair for a single page."""

    offset: int = Field(default=0, ge=0, description="Index of the first row")
    limit: int = Field(default=10, ge=0, description="Maximum number of rows")

    @classmethod
    def of(cls, page: int, size: int) -> PageRequest:
        """Build a request for zero-based page number *page* of *size* rows."""
        return cls(offset=page * size, limit=size)

    @property
    def page_number(self) -> int:
        return self.offset // self.limit if self.limit else 0


class SortField(_Frozen):
    field: str
    direction: Literal["asc", "desc"] = "asc"

    def render(self) -> str:
        return f"{self.field} {self.direction}"


# ═══════════════════════════════════════════════════════════════════════════════
# Facets
# ═══════════════════════════════════════════════════════════════════════════════


class FacetField(_Frozen):
    """Facet on the distinct values of a field."""

    name: str = Field(description="Solr field to facet on")
    prefix: str | None = Field(default=None, description="Only count values starting with this prefix")


class FacetPivot(_Frozen):
    """Pivot (decision tree) facet across several fields."""

    fields: tuple[str, ...] = Field(min_length=2, description="Fields in pivot order")

    @property
    def name(self) -> str:
        return ",".join(self.fields)


class FacetRange(_Frozen):
    """Range facet over a numeric or date field."""

    name: str
    start: str | int | float
    end: str | int | float
    gap: str | int | float
    hard_end: bool = False
    include: Literal["lower", "upper", "edge", "outer", "all"] | None = None
    other: Literal["before", "after", "between", "none", "all"] | None = None


class FacetQueryItem(_Frozen):
    """Arbitrary query whose match count is reported as a facet."""

    criteria: Criteria

    @property
    def name(self) -> str:
        return self.criteria.to_query_string()


class FacetOptions(_Frozen):
    fields: tuple[FacetField, ...] = ()
    pivots: tuple[FacetPivot, ...] = ()
    ranges: tuple[FacetRange, ...] = ()
    queries: tuple[FacetQueryItem, ...] = ()
    limit: int = Field(default=10, description="Max values per facet field (-1 for unlimited)")
    min_count: int = Field(default=1, ge=0)
    sort: Literal["count", "index"] = "count"
    offset: int = Field(default=0, ge=0)
    missing: bool = False

    @classmethod
    def on_fields(cls, *names: str, **kwargs: object) -> FacetOptions:
        return cls(fields=tuple(FacetField(name=n) for n in names), **kwargs)  # type: ignore[arg-type]

    @property
    def has_facets(self) -> bool:
        return bool(self.fields or self.pivots or self.ranges or self.queries)


# ═══════════════════════════════════════════════════════════════════════════════
# Grouping
# ═══════════════════════════════════════════════════════════════════════════════


class GroupField(_Frozen):
    """Group by the values of a field."""

    name: str


class GroupFunction(_Frozen):
    """Group by the result of a function query, e.g. ``"floor(price)"``."""

    function: str

    @property
    def name(self) -> str:
        return self.function


class GroupQueryItem(_Frozen):
    """A single group containing all documents matching a query."""

    criteria: Criteria

    @property
    def name(self) -> str:
        return self.criteria.to_query_string()


class GroupOptions(_Frozen):
    fields: tuple[GroupField, ...] = ()
    functions: tuple[GroupFunction, ...] = ()
    queries: tuple[GroupQueryItem, ...] = ()
    limit: int | None = Field(default=None, description="Documents returned per group")
    offset: int | None = Field(default=None, ge=0)
    sort: tuple[SortField, ...] = ()
    total_count: bool = Field(default=False, description="Request the number of groups (group.ngroups)")
    group_main: bool = False
    group_facets: bool = False
    truncate_facets: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# Highlighting
# ═══════════════════════════════════════════════════════════════════════════════


class HighlightField(_Frozen):
    name: str
    fragsize: int | None = None
    snippets: int | None = None


class HighlightOptions(_Frozen):
    fields: tuple[HighlightField, ...] = ()
    simple_prefix: str | None = None
    simple_postfix: str | None = None
    fragsize: int | None = None
    snippets: int | None = None
    query: Criteria | None = Field(default=None, description="Highlight this query instead of the main one")


# ═══════════════════════════════════════════════════════════════════════════════
# Statistics and terms
# ═══════════════════════════════════════════════════════════════════════════════


class StatsField(_Frozen):
    name: str
    facets: tuple[str, ...] = ()
    calc_distinct: bool = False


class StatsOptions(_Frozen):
    fields: tuple[StatsField, ...] = ()
    calc_distinct: bool = False

    @classmethod
    def on_fields(cls, *names: str) -> StatsOptions:
        return cls(fields=tuple(StatsField(name=n) for n in names))


class TermsOptions(_Frozen):
    fields: tuple[str, ...] = ()
    prefix: str | None = None
    limit: int = 10
    min_count: int = 1
    sort: Literal["count", "index"] = "count"


# ═══════════════════════════════════════════════════════════════════════════════
# Query variants
# ═══════════════════════════════════════════════════════════════════════════════


class SimpleQuery(_Frozen):
    """Plain query returning a scored page of documents."""

    kind: ClassVar[QueryKind] = QueryKind.QUERY

    criteria: Criteria = Field(default_factory=Criteria.all)
    filter_queries: tuple[Criteria, ...] = ()
    projection: tuple[str, ...] = Field(default=(), description="Fields to return (fl); empty = all")
    sort: tuple[SortField, ...] = ()
    page_request: PageRequest | None = None
    default_operator: Literal["AND", "OR"] | None = None
    def_type: str | None = None
    request_handler: str | None = None
    timeout_ms: int | None = Field(default=None, description="Solr timeAllowed")
    group_options: GroupOptions | None = None
    stats_options: StatsOptions | None = None

    def with_page(self, offset: int, limit: int) -> SimpleQuery:
        return self.model_copy(update={"page_request": PageRequest(offset=offset, limit=limit)})


class FacetQuery(SimpleQuery):
    kind: ClassVar[QueryKind] = QueryKind.FACET

    facet_options: FacetOptions = Field(default_factory=FacetOptions)


class GroupQuery(SimpleQuery):
    kind: ClassVar[QueryKind] = QueryKind.GROUP

    group_options: GroupOptions | None = Field(default_factory=GroupOptions)


class HighlightQuery(SimpleQuery):
    kind: ClassVar[QueryKind] = QueryKind.HIGHLIGHT

    highlight_options: HighlightOptions = Field(default_factory=HighlightOptions)


class StatsQuery(SimpleQuery):
    kind: ClassVar[QueryKind] = QueryKind.STATS

    stats_options: StatsOptions | None = Field(default_factory=StatsOptions)


class TermsQuery(_Frozen):
    """Query against the terms component; returns no documents."""

    kind: ClassVar[QueryKind] = QueryKind.TERMS

    terms_options: TermsOptions = Field(default_factory=TermsOptions)
    request_handler: str | None = None
