"""Event batcher contract (protocol)."""

from typing import Any, Protocol

from page_telemetry.domain.models.queued_event import EventCategory


class EventBatcherProtocol(Protocol):
    """Protocol for buffering events and flushing them to the sink in groups."""

    def enqueue(self, category: EventCategory, payload: dict[str, Any]) -> None:
        """Queue an event for the next flush."""
        ...

    async def flush(self) -> None:
        """Send everything queued so far."""
        ...

    def teardown(self) -> None:
        """Hand the remaining queue to a fire-and-forget send."""
        ...
