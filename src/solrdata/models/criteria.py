"""Criteria — Caller-side description of what a query matches.

``Criteria`` is a small immutable tree that renders into a Solr ``q`` or
``fq`` string. It carries no planning logic: whatever the caller chains is
rendered literally.

Example::

    Criteria.where("title").contains("solar").and_(
        Criteria.where("year").between(2020, 2024)
    ).to_query_string()
    # 'title:*solar* AND year:[2020 TO 2024]'
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from solrdata.core.exceptions import InvalidArgumentError

_SPECIAL_CHARS = re.compile(r'([+\-&|!(){}\[\]^"~*?:\\/])')
_WHITESPACE = re.compile(r"\s")

Operator = Literal["is", "contains", "starts_with", "ends_with", "between", "expression", "exists"]


def escape(value: Any) -> str:
    """Escape a value for use as a Solr term."""
    return _SPECIAL_CHARS.sub(r"\\\1", _format_value(value))


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
    return str(value)


def _term(value: Any) -> str:
    escaped = escape(value)
    if _WHITESPACE.search(escaped):
        return '"' + escaped + '"'
    return escaped


class Predicate(BaseModel):
    """A single condition on a field."""

    model_config = ConfigDict(frozen=True)

    operator: Operator
    value: Any = None
    upper: Any = None
    include_lower: bool = True
    include_upper: bool = True

    def render(self) -> str:
        if self.operator == "is":
            return _term(self.value)
        if self.operator == "contains":
            return f"*{escape(self.value)}*"
        if self.operator == "starts_with":
            return f"{escape(self.value)}*"
        if self.operator == "ends_with":
            return f"*{escape(self.value)}"
        if self.operator == "exists":
            return "[* TO *]"
        if self.operator == "between":
            lower = "*" if self.value is None else escape(self.value)
            upper = "*" if self.upper is None else escape(self.upper)
            left = "[" if self.include_lower else "{"
            right = "]" if self.include_upper else "}"
            return f"{left}{lower} TO {upper}{right}"
        return str(self.value)


class Criteria(BaseModel):
    """Immutable query criteria on one field, optionally chained to others."""

    model_config = ConfigDict(frozen=True)

    field: str | None = None
    predicates: tuple[Predicate, ...] = ()
    negated: bool = False
    boost_factor: float | None = None
    chain: tuple[tuple[Literal["AND", "OR"], Criteria], ...] = Field(default=())

    # ── Construction ─────────────────────────────────────────────────────

    @classmethod
    def where(cls, field: str) -> Criteria:
        return cls(field=field)

    @classmethod
    def all(cls) -> Criteria:
        """Criteria matching every document (``*:*``)."""
        return cls.raw("*:*")

    @classmethod
    def raw(cls, expression: str) -> Criteria:
        """Criteria rendered verbatim, e.g. ``"title:solar OR body:solar"``."""
        return cls(predicates=(Predicate(operator="expression", value=expression),))

    def _with(self, predicate: Predicate) -> Criteria:
        return self.model_copy(update={"predicates": (*self.predicates, predicate)})

    def is_(self, value: Any) -> Criteria:
        return self._with(Predicate(operator="is", value=value))

    def contains(self, value: str) -> Criteria:
        return self._with(Predicate(operator="contains", value=value))

    def starts_with(self, value: str) -> Criteria:
        return self._with(Predicate(operator="starts_with", value=value))

    def ends_with(self, value: str) -> Criteria:
        return self._with(Predicate(operator="ends_with", value=value))

    def between(
        self,
        lower: Any,
        upper: Any,
        include_lower: bool = True,
        include_upper: bool = True,
    ) -> Criteria:
        return self._with(
            Predicate(
                operator="between",
                value=lower,
                upper=upper,
                include_lower=include_lower,
                include_upper=include_upper,
            )
        )

    def expression(self, value: str) -> Criteria:
        """Append a raw, unescaped value for this field."""
        return self._with(Predicate(operator="expression", value=value))

    def is_not_null(self) -> Criteria:
        return self._with(Predicate(operator="exists"))

    def negate(self) -> Criteria:
        return self.model_copy(update={"negated": not self.negated})

    def boost(self, factor: float) -> Criteria:
        return self.model_copy(update={"boost_factor": factor})

    def and_(self, other: Criteria) -> Criteria:
        return self.model_copy(update={"chain": (*self.chain, ("AND", other))})

    def or_(self, other: Criteria) -> Criteria:
        return self.model_copy(update={"chain": (*self.chain, ("OR", other))})

    # ── Rendering ────────────────────────────────────────────────────────

    def to_query_string(self) -> str:
        """Render the criteria (and everything chained to it) as Solr syntax."""
        parts = [self._render_self()]
        for conjunction, other in self.chain:
            rendered = other.to_query_string()
            if other.chain:
                rendered = f"({rendered})"
            parts.append(f"{conjunction} {rendered}")
        return " ".join(parts)

    def _render_self(self) -> str:
        if not self.predicates:
            raise InvalidArgumentError(f"Criteria on field '{self.field}' has no condition.")

        if self.field is None:
            values = [p.render() for p in self.predicates]
            rendered = " AND ".join(values)
            if len(values) > 1:
                rendered = f"({rendered})"
        else:
            values = [p.render() for p in self.predicates]
            if len(values) == 1:
                rendered = f"{self.field}:{values[0]}"
            else:
                rendered = f"{self.field}:({' AND '.join(values)})"

        if self.boost_factor is not None:
            rendered = f"{rendered}^{self.boost_factor:g}"
        if self.negated:
            rendered = f"-{rendered}"
        return rendered

    def __str__(self) -> str:
        return self.to_query_string()
