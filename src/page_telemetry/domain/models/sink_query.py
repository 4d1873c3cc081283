"""Sink-neutral read query model."""

from dataclasses import dataclass, field, replace
from typing import Any, Literal

FilterOperator = Literal["eq", "gt", "gte", "lt", "lte"]


@dataclass(frozen=True)
class Filter:
    """A single column comparison."""

    column: str
    operator: FilterOperator
    value: Any


@dataclass(frozen=True)
class SinkQuery:
    """Columns, filters, ordering and limit for a read over one collection.

    Instances are immutable; the builder methods return modified copies.
    """

    columns: tuple[str, ...] = ("*",)
    filters: tuple[Filter, ...] = field(default_factory=tuple)
    order_by: str | None = None
    descending: bool = False
    limit: int | None = None

    def select(self, *columns: str) -> "SinkQuery":
        return replace(self, columns=columns or ("*",))

    def where(self, column: str, operator: FilterOperator, value: Any) -> "SinkQuery":
        return replace(self, filters=(*self.filters, Filter(column, operator, value)))

    def eq(self, column: str, value: Any) -> "SinkQuery":
        return self.where(column, "eq", value)

    def order(self, column: str, *, descending: bool = False) -> "SinkQuery":
        return replace(self, order_by=column, descending=descending)

    def take(self, limit: int) -> "SinkQuery":
        return replace(self, limit=limit)
