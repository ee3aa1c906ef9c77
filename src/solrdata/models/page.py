"""Result pages — Typed views over a reassembled Solr response.

``SolrResultPage`` is the single concrete page produced by the template; the
narrower ``ScoredPage``/``FacetPage``/``GroupPage``/``HighlightPage``/
``StatsPage`` bases document which payload a given ``query_for_*`` call
fills in. ``TermsPage`` stands alone because terms queries return no
documents.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from solrdata.models.query import (
    FacetField,
    FacetPivot,
    FacetQueryItem,
    FacetRange,
    GroupField,
    GroupFunction,
    GroupQueryItem,
    StatsField,
)


class _Payload(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Base page
# ═══════════════════════════════════════════════════════════════════════════════


class Page(_Payload):
    """A bounded, ordered slice of results plus paging metadata."""

    content: list[Any] = Field(default_factory=list, description="Converted domain objects")
    offset: int = Field(default=0, description="Offset of the first element")
    limit: int | None = Field(default=None, description="Requested page size (None = unpaged)")
    total_elements: int = Field(default=0, description="numFound as reported by Solr")
    max_score: float | None = Field(default=None, description="maxScore as reported by Solr")

    @property
    def number_of_elements(self) -> int:
        return len(self.content)

    @property
    def size(self) -> int:
        return self.limit if self.limit is not None else len(self.content)

    @property
    def page_number(self) -> int:
        return self.offset // self.size if self.size else 0

    @property
    def total_pages(self) -> int:
        if not self.size:
            return 1
        return math.ceil(self.total_elements / self.size)

    @property
    def has_next(self) -> bool:
        return self.offset + self.number_of_elements < self.total_elements

    @property
    def has_previous(self) -> bool:
        return self.offset > 0

    def __iter__(self) -> Iterator[Any]:  # type: ignore[override]
        return iter(self.content)

    def __len__(self) -> int:
        return len(self.content)


# ═══════════════════════════════════════════════════════════════════════════════
# Facet payload
# ═══════════════════════════════════════════════════════════════════════════════


class FacetFieldEntry(_Payload):
    value: str
    count: int


class FacetFieldResult(_Payload):
    """Value counts for one facet field, in the order Solr returned them."""

    field: FacetField
    entries: list[FacetFieldEntry] = Field(default_factory=list)

    def __iter__(self) -> Iterator[FacetFieldEntry]:  # type: ignore[override]
        return iter(self.entries)


class FacetPivotEntry(_Payload):
    field: str
    value: Any
    count: int
    pivot: list[FacetPivotEntry] = Field(default_factory=list)


class FacetPivotResult(_Payload):
    pivot: FacetPivot
    entries: list[FacetPivotEntry] = Field(default_factory=list)


class FacetRangeResult(_Payload):
    range: FacetRange
    entries: list[FacetFieldEntry] = Field(default_factory=list)
    before: int | None = None
    after: int | None = None
    between: int | None = None


class FacetQueryEntry(_Payload):
    query: FacetQueryItem
    count: int


# ═══════════════════════════════════════════════════════════════════════════════
# Stats payload
# ═══════════════════════════════════════════════════════════════════════════════


class FieldStatsResult(_Payload):
    """Summary statistics Solr computed for one field."""

    field: StatsField | None = None
    min: Any = None
    max: Any = None
    sum: Any = None
    count: int | None = None
    missing: int | None = None
    mean: Any = None
    sum_of_squares: float | None = None
    stddev: float | None = None
    count_distinct: int | None = None
    distinct_values: list[Any] = Field(default_factory=list)
    facets: dict[str, dict[str, FieldStatsResult]] = Field(default_factory=dict)


# ═══════════════════════════════════════════════════════════════════════════════
# Group payload
# ═══════════════════════════════════════════════════════════════════════════════


class GroupEntry(_Payload):
    """One group: its value and the page of documents it contains."""

    group_value: Any = None
    result: Page = Field(default_factory=Page)


class GroupResult(_Payload):
    """All groups produced by one group command."""

    name: str
    spec: GroupField | GroupFunction | GroupQueryItem | None = None
    matches: int = 0
    groups_count: int | None = None
    entries: list[GroupEntry] = Field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════════════
# Highlight payload
# ═══════════════════════════════════════════════════════════════════════════════


class HighlightEntry(_Payload):
    entity: Any
    highlights: dict[str, list[str]] = Field(default_factory=dict)


# ═══════════════════════════════════════════════════════════════════════════════
# Page variants
# ═══════════════════════════════════════════════════════════════════════════════


def _named(results: list[Any], attr: str, name: str) -> list[Any]:
    """Results whose originating spec (held in *attr*) targets *name*."""
    return [r for r in results if getattr(getattr(r, attr), "name", None) == name]


def _first_named(results: list[Any], attr: str, name: str) -> Any:
    matches = _named(results, attr, name)
    return matches[0] if matches else None


class ScoredPage(Page):
    pass


class FacetPage(ScoredPage):
    """Facet payloads, one result per requested sub-query, in response order.

    Two specs on the same field (say, two prefixes) yield two results. The
    by-field accessors return the first one, the ``*_for`` variants all.
    """

    facet_fields: list[FacetFieldResult] = Field(default_factory=list)
    facet_pivots: list[FacetPivotResult] = Field(default_factory=list)
    facet_ranges: list[FacetRangeResult] = Field(default_factory=list)
    facet_queries: list[FacetQueryEntry] = Field(default_factory=list)

    def facet_result(self, field: str) -> FacetFieldResult | None:
        return _first_named(self.facet_fields, "field", field)

    def facet_results_for(self, field: str) -> list[FacetFieldResult]:
        return _named(self.facet_fields, "field", field)

    def pivot_result(self, name: str) -> FacetPivotResult | None:
        return _first_named(self.facet_pivots, "pivot", name)

    def range_result(self, field: str) -> FacetRangeResult | None:
        return _first_named(self.facet_ranges, "range", field)

    def range_results_for(self, field: str) -> list[FacetRangeResult]:
        return _named(self.facet_ranges, "range", field)


class GroupPage(ScoredPage):
    group_results: dict[str, GroupResult] = Field(default_factory=dict)

    def group_result(self, name: str) -> GroupResult | None:
        return self.group_results.get(name)


class HighlightPage(ScoredPage):
    highlighted: list[HighlightEntry] = Field(default_factory=list)

    def highlights_for(self, entity: Any) -> dict[str, list[str]]:
        for entry in self.highlighted:
            if entry.entity is entity:
                return entry.highlights
        return {}


class StatsPage(ScoredPage):
    field_stats: list[FieldStatsResult] = Field(default_factory=list)

    def stats_for(self, field: str) -> FieldStatsResult | None:
        return _first_named(self.field_stats, "field", field)

    def stats_results_for(self, field: str) -> list[FieldStatsResult]:
        return _named(self.field_stats, "field", field)


class SolrResultPage(FacetPage, GroupPage, HighlightPage, StatsPage):
    """Concrete page carrying every payload a Solr response may contain."""


# ═══════════════════════════════════════════════════════════════════════════════
# Terms
# ═══════════════════════════════════════════════════════════════════════════════


class TermsFieldEntry(_Payload):
    field: str
    value: str
    count: int


class TermsPage(_Payload):
    """Term counts per field, each list ordered as Solr returned it."""

    terms: dict[str, list[TermsFieldEntry]] = Field(default_factory=dict)

    def for_field(self, field: str) -> list[TermsFieldEntry]:
        return self.terms.get(field, [])

    @property
    def field_names(self) -> list[str]:
        return list(self.terms)
