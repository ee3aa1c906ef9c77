"""Document conversion — Map domain objects to Solr documents and back.

The template only needs the narrow ``DocumentConverter`` and
``EntityMetadata`` protocols. The shipped defaults treat pydantic models as
entities: field aliases become Solr field names, and a field named
``score`` (or declared with ``json_schema_extra={"solr_score": True}``)
receives the relevance score.

Example::

    class Book(BaseModel):
        id: str
        title: str
        score: float | None = None

    converter = PydanticDocumentConverter()
    converter.write(Book(id="1", title="Dune"))   # {"id": "1", "title": "Dune"}
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, TypeVar, get_args, get_origin

from pydantic import BaseModel
from pydantic.fields import FieldInfo

T = TypeVar("T")

SCORE_FIELD = "score"
_MULTI_VALUED = (list, tuple, set, frozenset)


class DocumentConverter(Protocol):
    def write(self, obj: Any) -> dict[str, Any]: ...

    def read_all(self, documents: Iterable[Mapping[str, Any]], target_type: type[T]) -> list[T]: ...

    def read(self, target_type: type[T], document: Mapping[str, Any]) -> T: ...


class EntityMetadata(Protocol):
    def has_score_property(self, target_type: type | None) -> bool: ...


def _is_score_field(name: str, info: FieldInfo) -> bool:
    extra = info.json_schema_extra
    if isinstance(extra, dict) and extra.get("solr_score"):
        return True
    return (info.alias or name) == SCORE_FIELD


def _is_multi_valued(info: FieldInfo) -> bool:
    annotation = info.annotation
    if get_origin(annotation) in _MULTI_VALUED or annotation in _MULTI_VALUED:
        return True
    # Optional[list[str]] and friends
    return any(get_origin(arg) in _MULTI_VALUED or arg in _MULTI_VALUED for arg in get_args(annotation))


def _first_value(val: Any) -> Any:
    """Solr may return single-valued fields as lists; unwrap transparently."""
    if isinstance(val, list):
        return val[0] if val else None
    return val


class PydanticEntityMetadata:
    """Entity metadata derived from pydantic model fields."""

    def has_score_property(self, target_type: type | None) -> bool:
        if not (isinstance(target_type, type) and issubclass(target_type, BaseModel)):
            return False
        return any(_is_score_field(name, info) for name, info in target_type.model_fields.items())


class PydanticDocumentConverter:
    """Converter between pydantic models (or plain dicts) and Solr documents."""

    def write(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, Mapping):
            return dict(obj)
        if isinstance(obj, BaseModel):
            score_fields = {name for name, info in type(obj).model_fields.items() if _is_score_field(name, info)}
            return obj.model_dump(mode="json", by_alias=True, exclude_none=True, exclude=score_fields)
        raise TypeError(f"Cannot convert {type(obj).__name__} to a Solr document.")

    def read_all(self, documents: Iterable[Mapping[str, Any]], target_type: type[T]) -> list[T]:
        return [self.read(target_type, document) for document in documents]

    def read(self, target_type: type[T], document: Mapping[str, Any]) -> T:
        if target_type is None or target_type is dict:
            return dict(document)  # type: ignore[return-value]
        if not (isinstance(target_type, type) and issubclass(target_type, BaseModel)):
            raise TypeError(f"Cannot read Solr documents into {target_type!r}.")

        data: dict[str, Any] = {}
        for name, info in target_type.model_fields.items():
            key = info.alias or name
            if _is_score_field(name, info):
                if SCORE_FIELD in document:
                    data[key] = document[SCORE_FIELD]
                continue
            if key not in document:
                continue
            value = document[key]
            data[key] = value if _is_multi_valued(info) else _first_value(value)
        return target_type.model_validate(data)  # type: ignore[return-value]
