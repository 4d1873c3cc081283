"""Shared fixtures and test doubles."""

from __future__ import annotations

from typing import Any

import pytest

from page_telemetry.adapters.sink import InMemoryDataSink
from page_telemetry.adapters.storage import InMemoryKeyValueStore
from page_telemetry.application import ActivityTracker, IdentityStore
from page_telemetry.domain.models import ErrorDetails, Failed, FetchResult, SinkError, SinkQuery


class RecordingSink(InMemoryDataSink):
    """In-memory sink that records every call and can fail per collection."""

    def __init__(self, fail_collections: set[str] | None = None) -> None:
        super().__init__()
        self.calls: list[tuple[str, str]] = []
        self.inserted: list[tuple[str, list[dict[str, Any]]]] = []
        self.dispatched: list[tuple[str, list[dict[str, Any]], str | None]] = []
        self.fail_collections = fail_collections or set()

    def _error(self) -> SinkError:
        return SinkError(ErrorDetails(status_code=503, reason="Service unavailable"))

    def _record(self, operation: str, collection: str) -> None:
        self.calls.append((operation, collection))
        if collection in self.fail_collections:
            raise self._error()

    def count_calls(self, operation: str, collection: str | None = None) -> int:
        return sum(
            1
            for op, coll in self.calls
            if op == operation and (collection is None or coll == collection)
        )

    async def insert(self, collection: str, records: list[dict[str, Any]]) -> None:
        self._record("insert", collection)
        self.inserted.append((collection, [dict(r) for r in records]))
        await super().insert(collection, records)

    async def upsert(self, collection: str, record: dict[str, Any], on_conflict: str) -> None:
        self._record("upsert", collection)
        await super().upsert(collection, record, on_conflict)

    async def update(self, collection: str, values: dict[str, Any], query: SinkQuery) -> None:
        self._record("update", collection)
        await super().update(collection, values, query)

    async def select(self, collection: str, query: SinkQuery) -> list[dict[str, Any]]:
        self._record("select", collection)
        return await super().select(collection, query)

    async def count(self, collection: str, query: SinkQuery) -> int:
        self._record("count", collection)
        return await super().count(collection, query)

    async def fetch_single(self, collection: str, query: SinkQuery) -> FetchResult:
        self.calls.append(("fetch_single", collection))
        if collection in self.fail_collections:
            return Failed(self._error())
        return await super().fetch_single(collection, query)

    def dispatch(
        self,
        collection: str,
        records: list[dict[str, Any]],
        on_conflict: str | None = None,
    ) -> None:
        self.calls.append(("dispatch", collection))
        self.dispatched.append((collection, [dict(r) for r in records], on_conflict))
        super().dispatch(collection, records, on_conflict)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def activity(clock: FakeClock) -> ActivityTracker:
    return ActivityTracker(min_activity_gap_seconds=10.0, clock=clock)


@pytest.fixture
def identity() -> IdentityStore:
    return IdentityStore(InMemoryKeyValueStore())
