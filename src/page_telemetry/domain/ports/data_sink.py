"""Data sink port."""

from typing import Any, Protocol

from page_telemetry.domain.models.fetch_result import FetchResult
from page_telemetry.domain.models.sink_query import SinkQuery


class DataSink(Protocol):
    """Port for the remote store that receives telemetry records.

    All awaitable calls raise SinkError on failure, except fetch_single which
    reports failures through its result variant.
    """

    async def insert(self, collection: str, records: list[dict[str, Any]]) -> None:
        """Insert a group of records into a collection."""
        ...

    async def upsert(self, collection: str, record: dict[str, Any], on_conflict: str) -> None:
        """Insert a record, replacing any existing row with the same on_conflict key."""
        ...

    async def update(self, collection: str, values: dict[str, Any], query: SinkQuery) -> None:
        """Update the rows matched by the query filters."""
        ...

    async def select(self, collection: str, query: SinkQuery) -> list[dict[str, Any]]:
        """Return the rows matched by the query."""
        ...

    async def count(self, collection: str, query: SinkQuery) -> int:
        """Return the number of rows matched by the query without fetching them."""
        ...

    async def fetch_single(self, collection: str, query: SinkQuery) -> FetchResult:
        """Fetch exactly one row matched by the query."""
        ...

    def dispatch(
        self,
        collection: str,
        records: list[dict[str, Any]],
        on_conflict: str | None = None,
    ) -> None:
        """Send records without waiting for the result.

        Must not block and must not raise. Delivery is not guaranteed.
        """
        ...

    async def drain(self, timeout: float) -> int:
        """Give dispatched sends up to timeout seconds to finish.

        Returns:
            The number of sends abandoned when the timeout expired.
        """
        ...
