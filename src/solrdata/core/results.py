"""Result reassembly — Convert raw Solr response sections into page payloads.

Every helper takes the decoded JSON response and returns the typed payload
for one section. Sections absent from the response produce empty payloads.
Lookups go through the named-objects association first and fall back to the
spec objects of the query itself, so unwrapped queries reassemble too.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from solrdata.models.criteria import Criteria
from solrdata.models.page import (
    FacetFieldEntry,
    FacetFieldResult,
    FacetPivotEntry,
    FacetPivotResult,
    FacetQueryEntry,
    FacetRangeResult,
    FieldStatsResult,
    GroupEntry,
    GroupResult,
    HighlightEntry,
    Page,
    TermsFieldEntry,
)
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

Response = Mapping[str, Any]
DocumentReader = Callable[[list[dict[str, Any]]], list[Any]]


def _pairs(values: Any) -> list[tuple[str, int]]:
    """Normalise Solr's named lists (flat ``[k, v, k, v]`` or map) to pairs."""
    if isinstance(values, Mapping):
        return [(str(k), int(v)) for k, v in values.items()]
    if isinstance(values, list):
        if values and isinstance(values[0], list):
            return [(str(k), int(v)) for k, v in values]
        return [(str(values[i]), int(values[i + 1])) for i in range(0, len(values) - 1, 2)]
    return []


def _resolve(names: Mapping[str, Any], key: str, expected: type | tuple[type, ...], fallback: Iterable[Any]) -> Any:
    """Find the spec object a response key belongs to."""
    obj = names.get(key)
    if isinstance(obj, expected):
        return obj
    for candidate in fallback:
        if getattr(candidate, "name", None) == key:
            return candidate
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# Documents
# ═══════════════════════════════════════════════════════════════════════════════


def document_section(response: Response | None) -> Mapping[str, Any] | None:
    if not response:
        return None
    section = response.get("response")
    return section if isinstance(section, Mapping) else None


def documents(response: Response | None) -> list[dict[str, Any]]:
    section = document_section(response)
    if section is None:
        return []
    return list(section.get("docs") or [])


def num_found(response: Response | None) -> int:
    section = document_section(response)
    return int(section.get("numFound", 0)) if section is not None else 0


def max_score(response: Response | None) -> float | None:
    section = document_section(response)
    if section is None or section.get("maxScore") is None:
        return None
    return float(section["maxScore"])


# ═══════════════════════════════════════════════════════════════════════════════
# Facets
# ═══════════════════════════════════════════════════════════════════════════════


def _facet_counts(response: Response) -> Mapping[str, Any]:
    counts = response.get("facet_counts")
    return counts if isinstance(counts, Mapping) else {}


def convert_facet_fields(query: Any, response: Response, names: Mapping[str, Any]) -> list[FacetFieldResult]:
    """Facet field counts, one result per response key, each with its own spec."""
    specs = query.facet_options.fields if getattr(query, "facet_options", None) else ()
    results: list[FacetFieldResult] = []
    for key, values in (_facet_counts(response).get("facet_fields") or {}).items():
        spec = _resolve(names, key, FacetField, specs) or FacetField(name=key)
        entries = [FacetFieldEntry(value=value, count=count) for value, count in _pairs(values)]
        results.append(FacetFieldResult(field=spec, entries=entries))
    return results


def _pivot_entries(raw: list[Mapping[str, Any]]) -> list[FacetPivotEntry]:
    return [
        FacetPivotEntry(
            field=item.get("field", ""),
            value=item.get("value"),
            count=int(item.get("count", 0)),
            pivot=_pivot_entries(item.get("pivot") or []),
        )
        for item in raw
    ]


def convert_facet_pivots(query: Any, response: Response, names: Mapping[str, Any]) -> list[FacetPivotResult]:
    specs = query.facet_options.pivots if getattr(query, "facet_options", None) else ()
    results: list[FacetPivotResult] = []
    for key, raw in (_facet_counts(response).get("facet_pivot") or {}).items():
        spec = _resolve(names, key, FacetPivot, specs) or FacetPivot(fields=tuple(key.split(",")))
        results.append(FacetPivotResult(pivot=spec, entries=_pivot_entries(raw or [])))
    return results


def convert_facet_ranges(query: Any, response: Response, names: Mapping[str, Any]) -> list[FacetRangeResult]:
    specs = query.facet_options.ranges if getattr(query, "facet_options", None) else ()
    results: list[FacetRangeResult] = []
    for key, raw in (_facet_counts(response).get("facet_ranges") or {}).items():
        spec = _resolve(names, key, FacetRange, specs)
        if spec is None:
            spec = FacetRange(name=key, start=raw.get("start", ""), end=raw.get("end", ""), gap=raw.get("gap", ""))
        results.append(
            FacetRangeResult(
                range=spec,
                entries=[FacetFieldEntry(value=v, count=c) for v, c in _pairs(raw.get("counts"))],
                before=raw.get("before"),
                after=raw.get("after"),
                between=raw.get("between"),
            )
        )
    return results


def convert_facet_queries(query: Any, response: Response, names: Mapping[str, Any]) -> list[FacetQueryEntry]:
    specs = query.facet_options.queries if getattr(query, "facet_options", None) else ()
    results: list[FacetQueryEntry] = []
    for key, count in (_facet_counts(response).get("facet_queries") or {}).items():
        spec = _resolve(names, key, FacetQueryItem, specs) or FacetQueryItem(criteria=Criteria.raw(key))
        results.append(FacetQueryEntry(query=spec, count=int(count)))
    return results


# ═══════════════════════════════════════════════════════════════════════════════
# Stats
# ═══════════════════════════════════════════════════════════════════════════════


def _field_stats(raw: Mapping[str, Any], spec: StatsField | None) -> FieldStatsResult:
    facets: dict[str, dict[str, FieldStatsResult]] = {}
    for facet_field, values in (raw.get("facets") or {}).items():
        facets[facet_field] = {str(value): _field_stats(stats, None) for value, stats in (values or {}).items()}
    return FieldStatsResult(
        field=spec,
        min=raw.get("min"),
        max=raw.get("max"),
        sum=raw.get("sum"),
        count=raw.get("count"),
        missing=raw.get("missing"),
        mean=raw.get("mean"),
        sum_of_squares=raw.get("sumOfSquares"),
        stddev=raw.get("stddev"),
        count_distinct=raw.get("countDistinct"),
        distinct_values=list(raw.get("distinctValues") or []),
        facets=facets,
    )


def convert_field_stats(query: Any, response: Response, names: Mapping[str, Any]) -> list[FieldStatsResult]:
    """Stats per requested stats field, each carrying its originating spec."""
    stats = response.get("stats")
    if not isinstance(stats, Mapping):
        return []
    options = getattr(query, "stats_options", None)
    specs = options.fields if options else ()

    results: list[FieldStatsResult] = []
    for key, raw in (stats.get("stats_fields") or {}).items():
        if raw is None:
            continue
        spec = _resolve(names, key, StatsField, specs) or StatsField(name=key)
        results.append(_field_stats(raw, spec))
    return results


# ═══════════════════════════════════════════════════════════════════════════════
# Groups
# ═══════════════════════════════════════════════════════════════════════════════


def _doc_list_page(doclist: Mapping[str, Any], read: DocumentReader, limit: int | None) -> Page:
    return Page(
        content=read(list(doclist.get("docs") or [])),
        offset=int(doclist.get("start", 0)),
        limit=limit,
        total_elements=int(doclist.get("numFound", 0)),
        max_score=doclist.get("maxScore"),
    )


def convert_groups(query: Any, response: Response, names: Mapping[str, Any], read: DocumentReader) -> dict[str, GroupResult]:
    """Group results in the order Solr returned the group commands.

    Each group's documents are converted with *read*; field and function
    commands yield one entry per distinct value, query commands yield a
    single entry whose ``group_value`` is the query string.
    """
    grouped = response.get("grouped")
    if not isinstance(grouped, Mapping):
        return {}
    options = getattr(query, "group_options", None)
    specs: list[Any] = [*options.fields, *options.functions, *options.queries] if options else []
    limit = options.limit if options else None

    results: dict[str, GroupResult] = {}
    for key, raw in grouped.items():
        spec = _resolve(names, key, (GroupField, GroupFunction, GroupQueryItem), specs)
        entries: list[GroupEntry] = []
        if "groups" in raw:
            for group in raw.get("groups") or []:
                entries.append(
                    GroupEntry(
                        group_value=group.get("groupValue"),
                        result=_doc_list_page(group.get("doclist") or {}, read, limit),
                    )
                )
        elif "doclist" in raw:
            entries.append(GroupEntry(group_value=key, result=_doc_list_page(raw["doclist"], read, limit)))

        results[key] = GroupResult(
            name=key,
            spec=spec,
            matches=int(raw.get("matches", 0)),
            groups_count=raw.get("ngroups"),
            entries=entries,
        )
    return results


# ═══════════════════════════════════════════════════════════════════════════════
# Highlighting
# ═══════════════════════════════════════════════════════════════════════════════


def convert_highlights(
    response: Response,
    entities: list[Any],
    unique_key: str = "id",
) -> list[HighlightEntry]:
    """Pair each converted entity with its highlight snippets.

    *entities* must be in the same order as the response documents.
    """
    highlighting = response.get("highlighting")
    if not isinstance(highlighting, Mapping):
        return []

    entries: list[HighlightEntry] = []
    for document, entity in zip(documents(response), entities, strict=False):
        doc_id = document.get(unique_key)
        if isinstance(doc_id, list):
            doc_id = doc_id[0] if doc_id else None
        snippets = highlighting.get(str(doc_id)) or {}
        entries.append(HighlightEntry(entity=entity, highlights={f: list(s) for f, s in snippets.items() if s}))
    return entries


# ═══════════════════════════════════════════════════════════════════════════════
# Terms
# ═══════════════════════════════════════════════════════════════════════════════


def convert_terms(response: Response | None) -> dict[str, list[TermsFieldEntry]]:
    """Term counts per field, preserving Solr's (descending count) order."""
    if not response:
        return {}
    terms = response.get("terms")
    if not isinstance(terms, Mapping):
        return {}
    return {
        field: [TermsFieldEntry(field=field, value=value, count=count) for value, count in _pairs(values)]
        for field, values in terms.items()
    }
