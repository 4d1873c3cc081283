"""Domain models for page telemetry."""

from page_telemetry.domain.models.client_context import ClientContext
from page_telemetry.domain.models.error_details import ErrorDetails, SinkError
from page_telemetry.domain.models.fetch_result import Failed, FetchResult, Found, NotFound
from page_telemetry.domain.models.queued_event import EventCategory, QueuedEvent
from page_telemetry.domain.models.records import (
    INTERACTION_TYPES,
    AnalyticsSummary,
    BusinessInteraction,
    InteractionType,
    PresenceRecord,
    UserTrackingData,
    VisitLog,
)
from page_telemetry.domain.models.sink_query import Filter, SinkQuery
from page_telemetry.domain.models.stats import DailyVisits, HourlyVisits, PopularBusiness

__all__ = [
    "INTERACTION_TYPES",
    "AnalyticsSummary",
    "BusinessInteraction",
    "ClientContext",
    "DailyVisits",
    "ErrorDetails",
    "EventCategory",
    "Failed",
    "FetchResult",
    "Filter",
    "Found",
    "HourlyVisits",
    "InteractionType",
    "NotFound",
    "PopularBusiness",
    "PresenceRecord",
    "QueuedEvent",
    "SinkError",
    "SinkQuery",
    "UserTrackingData",
    "VisitLog",
]
