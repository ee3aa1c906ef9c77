"""Named-objects wrapping — Re-associate response fragments with sub-queries.

Solr reports facet, stats, group and highlight results keyed by a name. The
template wraps facet/group/highlight queries in ``NamedObjectsQuery`` so that
each sub-query sent to Solr is registered under a unique key; after the round
trip the result helpers look fragments up by that key and recover the
caller's original spec object.
"""

from __future__ import annotations

import itertools
from typing import Any


class NamedObjectsQuery:
    """Transparent wrapper handing out synthetic names for sub-queries.

    Attribute access (including ``kind``) is delegated to the wrapped query,
    so parsers treat the wrapper exactly like the original. The association
    lives only as long as the wrapper, i.e. one request/response cycle.

    Args:
        query: The query to wrap.
    """

    def __init__(self, query: Any) -> None:
        self._query = query
        self._association: dict[str, Any] = {}
        self._counter = itertools.count()

    @property
    def query(self) -> Any:
        return self._query

    @property
    def kind(self) -> Any:
        return self._query.kind

    def __getattr__(self, name: str) -> Any:
        return getattr(self._query, name)

    def name_for(self, obj: Any, prefix: str) -> str:
        """Register *obj* under a fresh synthetic name and return the name."""
        name = f"__{prefix}_{next(self._counter)}"
        self._association[name] = obj
        return name

    def associate(self, key: str, obj: Any) -> str:
        """Register *obj* under a key Solr chooses itself (field or query string).

        Group commands and highlight fields cannot be aliased, so the
        response key is the natural one. The first spec registered for a key
        wins.
        """
        self._association.setdefault(key, obj)
        return key

    @property
    def names_association(self) -> dict[str, Any]:
        return dict(self._association)

    def __repr__(self) -> str:
        return f"NamedObjectsQuery({self._query!r})"


def synthetic_key(query: Any, obj: Any, prefix: str) -> str | None:
    """Synthetic name for *obj* when *query* is wrapped, else ``None``."""
    if isinstance(query, NamedObjectsQuery):
        return query.name_for(obj, prefix)
    return None


def natural_key(query: Any, key: str, obj: Any) -> str:
    if isinstance(query, NamedObjectsQuery):
        query.associate(key, obj)
    return key
