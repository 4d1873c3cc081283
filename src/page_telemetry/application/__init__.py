"""Application services (use cases) for telemetry collection."""

from page_telemetry.application.activity_tracker import ActivityTracker
from page_telemetry.application.analytics_queries import AnalyticsQueries
from page_telemetry.application.event_batcher import EventBatcher
from page_telemetry.application.identity_store import IdentityStore
from page_telemetry.application.presence_heartbeat import PresenceHeartbeat
from page_telemetry.application.tracking_service import TrackingService

__all__ = [
    "ActivityTracker",
    "AnalyticsQueries",
    "EventBatcher",
    "IdentityStore",
    "PresenceHeartbeat",
    "TrackingService",
]
