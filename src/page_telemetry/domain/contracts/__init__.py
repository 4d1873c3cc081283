"""Contracts (protocols) implemented by the application layer."""

from page_telemetry.domain.contracts.activity_tracker import ActivityTrackerProtocol
from page_telemetry.domain.contracts.event_batcher import EventBatcherProtocol
from page_telemetry.domain.contracts.presence_heartbeat import PresenceHeartbeatProtocol

__all__ = [
    "ActivityTrackerProtocol",
    "EventBatcherProtocol",
    "PresenceHeartbeatProtocol",
]
