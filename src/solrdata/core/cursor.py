"""Cursor — Lazy iteration over large result sets using Solr's ``cursorMark``.

A cursor pulls one batch per round trip and hands out documents one at a
time. Solr returns ``nextCursorMark`` with every batch; sending it back
continues the scan where the previous batch ended.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from solrdata.core.exceptions import InvalidArgumentError
from solrdata.core.native import NativeQuery

logger = logging.getLogger(__name__)

CURSOR_MARK_PARAM = "cursorMark"
CURSOR_MARK_START = "*"


class State(str, Enum):
    READY = "ready"
    OPEN = "open"
    EXHAUSTED = "exhausted"
    CLOSED = "closed"


class PartialResult(BaseModel):
    """One batch returned by a cursor load."""

    next_cursor_mark: str | None = Field(description="nextCursorMark from the response")
    items: list[Any] = Field(default_factory=list, description="Converted domain objects")
    total: int | None = Field(default=None, description="numFound, when reported")


class Cursor(ABC):
    """Single-owner, forward-only iterator over a query's results.

    Not safe for concurrent advancement. Iterating an exhausted or closed
    cursor yields nothing and makes no round trips.
    """

    @abstractmethod
    def open(self) -> Cursor: ...

    @abstractmethod
    def close(self) -> None: ...

    @property
    @abstractmethod
    def cursor_mark(self) -> str | None: ...

    @property
    @abstractmethod
    def position(self) -> int: ...

    @property
    @abstractmethod
    def state(self) -> State: ...

    @abstractmethod
    def __next__(self) -> Any: ...

    def __iter__(self) -> Iterator[Any]:
        return self

    def __enter__(self) -> Cursor:
        if self.state is State.READY:
            self.open()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class DelegatingCursor(Cursor):
    """Cursor that delegates each round trip to a load function.

    Args:
        native_query: Request template; ``cursorMark`` is set per load.
        load: Called with the prepared request, returns a ``PartialResult``.
        unique_key: Schema unique key, appended to the sort as tie-breaker.
    """

    def __init__(
        self,
        native_query: NativeQuery,
        load: Callable[[NativeQuery], PartialResult],
        unique_key: str = "id",
    ) -> None:
        self._template = native_query.copy()
        self._load = load
        self._unique_key = unique_key
        self._cursor_mark: str | None = None
        self._state = State.READY
        self._batch: list[Any] = []
        self._batch_index = 0
        self._position = 0
        self._delivered = 0
        self._total: int | None = None
        self.round_trips = 0

    # ── State ────────────────────────────────────────────────────────────

    @property
    def cursor_mark(self) -> str | None:
        return self._cursor_mark

    @property
    def position(self) -> int:
        """Number of elements handed out so far."""
        return self._position

    @property
    def state(self) -> State:
        return self._state

    @property
    def native_query(self) -> NativeQuery:
        return self._template.copy()

    # ── Lifecycle ────────────────────────────────────────────────────────

    def open(self) -> DelegatingCursor:
        """Prepare the request and fetch the first batch.

        Raises:
            InvalidArgumentError: If the cursor was already opened.
        """
        if self._state is not State.READY:
            raise InvalidArgumentError(f"Cursor cannot be opened in state '{self._state.value}'.")

        # Solr rejects cursor requests with a start offset or without the unique key in the sort
        self._template.remove("start")
        sort = self._template.get("sort")
        if not sort:
            self._template.set("sort", f"{self._unique_key} asc")
        elif not any(part.split()[0] == self._unique_key for part in sort.split(",") if part.strip()):
            self._template.set("sort", f"{sort}, {self._unique_key} asc")

        self._cursor_mark = CURSOR_MARK_START
        self._state = State.OPEN
        self.load()
        return self

    def close(self) -> None:
        self._state = State.CLOSED
        self._batch = []
        self._batch_index = 0

    def load(self) -> None:
        """Fetch the batch following the current cursor mark.

        On failure the exception propagates and the cursor is left exactly
        as before the call, so the same load may be retried.
        """
        if self._state is not State.OPEN:
            return

        request = self._template.copy()
        request.set(CURSOR_MARK_PARAM, self._cursor_mark)
        result = self._load(request)
        self.round_trips += 1

        self._batch = list(result.items)
        self._batch_index = 0
        self._delivered += len(self._batch)
        if result.total is not None:
            self._total = result.total

        next_mark = result.next_cursor_mark
        if (
            not next_mark
            or next_mark == self._cursor_mark
            or not self._batch
            or (self._total is not None and self._delivered >= self._total)
        ):
            logger.debug("Cursor exhausted after %d round trips", self.round_trips)
            self._state = State.EXHAUSTED
        self._cursor_mark = next_mark or self._cursor_mark

    # ── Iteration ────────────────────────────────────────────────────────

    def has_next(self) -> bool:
        """Whether another element is available, loading a batch if needed."""
        if self._state is State.READY:
            self.open()
        while self._batch_index >= len(self._batch):
            if self._state is not State.OPEN:
                return False
            self.load()
        return True

    def __next__(self) -> Any:
        if self._state is State.CLOSED or not self.has_next():
            raise StopIteration
        item = self._batch[self._batch_index]
        self._batch_index += 1
        self._position += 1
        return item
