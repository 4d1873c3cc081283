"""In-memory data sink.

Used when no remote sink is configured and as the reference behavior in tests.
Applies the same filter, ordering and upsert semantics as the PostgREST sink.
"""

from __future__ import annotations

import copy
import logging
import operator
from datetime import UTC, datetime
from typing import Any, Callable

from page_telemetry.domain.models.error_details import ErrorDetails, SinkError
from page_telemetry.domain.models.fetch_result import Failed, FetchResult, Found, NotFound
from page_telemetry.domain.models.sink_query import Filter, SinkQuery
from page_telemetry.domain.ports.data_sink import DataSink

logger = logging.getLogger(__name__)

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": operator.eq,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}


def _as_datetime(value: Any) -> datetime:
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _comparable(row_value: Any, filter_value: Any) -> tuple[Any, Any]:
    """Coerce both sides of a comparison to a common type."""
    if isinstance(filter_value, datetime) or isinstance(row_value, datetime):
        return _as_datetime(row_value), _as_datetime(filter_value)
    return row_value, filter_value


def _matches(row: dict[str, Any], filters: tuple[Filter, ...]) -> bool:
    for f in filters:
        row_value = row.get(f.column)
        if row_value is None:
            return False
        try:
            left, right = _comparable(row_value, f.value)
            if not _OPERATORS[f.operator](left, right):
                return False
        except (TypeError, ValueError):
            return False
    return True


def _sort_key(value: Any) -> tuple[int, Any]:
    # Missing values sort last in ascending order
    return (1, "") if value is None else (0, value)


class InMemoryDataSink(DataSink):
    """Data sink that keeps collections as lists of dicts."""

    def __init__(self) -> None:
        self._collections: dict[str, list[dict[str, Any]]] = {}

    def rows(self, collection: str) -> list[dict[str, Any]]:
        """Return a copy of all rows in a collection."""
        return copy.deepcopy(self._collections.get(collection, []))

    def _rows(self, collection: str) -> list[dict[str, Any]]:
        return self._collections.setdefault(collection, [])

    def _query_rows(self, collection: str, query: SinkQuery) -> list[dict[str, Any]]:
        rows = [row for row in self._rows(collection) if _matches(row, query.filters)]
        if query.order_by:
            column = query.order_by
            rows.sort(key=lambda row: _sort_key(row.get(column)), reverse=query.descending)
        if query.limit is not None:
            rows = rows[: query.limit]
        if "*" not in query.columns:
            rows = [{c: row.get(c) for c in query.columns} for row in rows]
        return copy.deepcopy(rows)

    def _upsert_one(self, collection: str, record: dict[str, Any], on_conflict: str) -> None:
        rows = self._rows(collection)
        key = record.get(on_conflict)
        for index, row in enumerate(rows):
            if row.get(on_conflict) == key:
                rows[index] = {**row, **copy.deepcopy(record)}
                return
        rows.append(copy.deepcopy(record))

    async def insert(self, collection: str, records: list[dict[str, Any]]) -> None:
        self._rows(collection).extend(copy.deepcopy(records))

    async def upsert(self, collection: str, record: dict[str, Any], on_conflict: str) -> None:
        if on_conflict not in record:
            raise SinkError(
                ErrorDetails(reason=f"Upsert record is missing conflict key '{on_conflict}'")
            )
        self._upsert_one(collection, record, on_conflict)

    async def update(self, collection: str, values: dict[str, Any], query: SinkQuery) -> None:
        for row in self._rows(collection):
            if _matches(row, query.filters):
                row.update(copy.deepcopy(values))

    async def select(self, collection: str, query: SinkQuery) -> list[dict[str, Any]]:
        return self._query_rows(collection, query)

    async def count(self, collection: str, query: SinkQuery) -> int:
        return sum(1 for row in self._rows(collection) if _matches(row, query.filters))

    async def fetch_single(self, collection: str, query: SinkQuery) -> FetchResult:
        rows = self._query_rows(collection, query)
        if not rows:
            return NotFound()
        if len(rows) > 1:
            return Failed(
                SinkError(
                    ErrorDetails(
                        reason=f"Expected a single row, got {len(rows)}",
                        code="PGRST116",
                    )
                )
            )
        return Found(rows[0])

    def dispatch(
        self,
        collection: str,
        records: list[dict[str, Any]],
        on_conflict: str | None = None,
    ) -> None:
        if on_conflict is None:
            self._rows(collection).extend(copy.deepcopy(records))
            return
        for record in records:
            if on_conflict in record:
                self._upsert_one(collection, record, on_conflict)
            else:
                logger.debug(f"Dropping dispatched record without '{on_conflict}'")

    async def drain(self, timeout: float) -> int:  # noqa: ARG002
        return 0
