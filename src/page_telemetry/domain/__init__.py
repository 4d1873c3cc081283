"""Domain layer - core models, ports and contracts."""

from page_telemetry.domain.models import (
    EventCategory,
    PresenceRecord,
    QueuedEvent,
    SinkError,
    SinkQuery,
)
from page_telemetry.domain.ports import (
    DataSink,
    KeyValueStore,
)

__all__ = [
    "DataSink",
    "EventCategory",
    "KeyValueStore",
    "PresenceRecord",
    "QueuedEvent",
    "SinkError",
    "SinkQuery",
]
