"""Queued event domain model."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventCategory(str, Enum):
    """Category of a batched telemetry event.

    The value is the name of the sink collection the event is written to.
    """

    INTERACTION = "business_interactions"
    VISIT = "visit_logs"

    @property
    def collection(self) -> str:
        """Sink collection that receives events of this category."""
        return self.value


@dataclass(frozen=True)
class QueuedEvent:
    """A single event waiting in the in-memory queue for the next flush."""

    category: EventCategory
    payload: dict[str, Any] = field(default_factory=dict)
