"""Native query — Solr request parameters produced by a query parser."""

from __future__ import annotations

from urllib.parse import urlencode

SELECT_HANDLER = "/select"
TERMS_HANDLER = "/terms"


class NativeQuery:
    """Ordered, multi-valued set of Solr request parameters.

    Solr accepts repeated parameters (``fq``, ``facet.field``, ...), so every
    name maps to a list of values. Insertion order is kept so the encoded
    request is deterministic.

    Args:
        handler: Request handler path relative to the core.
    """

    def __init__(self, handler: str = SELECT_HANDLER) -> None:
        self.handler = handler
        self._params: dict[str, list[str]] = {}

    def set(self, name: str, value: object) -> NativeQuery:
        """Replace all values of *name* with *value*."""
        self._params[name] = [_to_param(value)]
        return self

    def add(self, name: str, value: object) -> NativeQuery:
        """Append *value* to the values of *name*."""
        self._params.setdefault(name, []).append(_to_param(value))
        return self

    def get(self, name: str, default: str | None = None) -> str | None:
        values = self._params.get(name)
        return values[0] if values else default

    def get_all(self, name: str) -> list[str]:
        return list(self._params.get(name, []))

    def remove(self, name: str) -> None:
        self._params.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._params

    def to_params(self) -> list[tuple[str, str]]:
        """Flatten into the ``(name, value)`` pairs sent over the wire."""
        return [(name, value) for name, values in self._params.items() for value in values]

    def copy(self) -> NativeQuery:
        clone = NativeQuery(self.handler)
        clone._params = {name: list(values) for name, values in self._params.items()}
        return clone

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NativeQuery):
            return NotImplemented
        return self.handler == other.handler and self._params == other._params

    def __repr__(self) -> str:
        return f"NativeQuery(handler={self.handler!r}, params={self._params!r})"

    def __str__(self) -> str:
        return f"{self.handler}?{urlencode(self.to_params())}"


def _to_param(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
