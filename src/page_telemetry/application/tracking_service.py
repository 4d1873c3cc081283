"""Tracking service: public tracking operations composed from the core components."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from page_telemetry.application.analytics_queries import USER_TRACKING_COLLECTION
from page_telemetry.domain.models.client_context import ClientContext
from page_telemetry.domain.models.error_details import SinkError
from page_telemetry.domain.models.fetch_result import Failed, Found, NotFound
from page_telemetry.domain.models.queued_event import EventCategory
from page_telemetry.domain.models.records import (
    INTERACTION_TYPES,
    BusinessInteraction,
    UserTrackingData,
    VisitLog,
)
from page_telemetry.domain.models.sink_query import SinkQuery

if TYPE_CHECKING:
    from page_telemetry.application.activity_tracker import ActivityTracker
    from page_telemetry.application.event_batcher import EventBatcher
    from page_telemetry.application.identity_store import IdentityStore
    from page_telemetry.application.presence_heartbeat import PresenceHeartbeat
    from page_telemetry.domain.ports import DataSink, TeardownRegistry

logger = logging.getLogger(__name__)


class TrackingService:
    """Records visits and business interactions and keeps presence alive."""

    def __init__(
        self,
        sink: DataSink,
        identity: IdentityStore,
        activity: ActivityTracker,
        batcher: EventBatcher,
        heartbeat: PresenceHeartbeat,
        context: ClientContext | None = None,
        enabled: bool = True,
    ) -> None:
        self._sink = sink
        self._identity = identity
        self._activity = activity
        self._batcher = batcher
        self._heartbeat = heartbeat
        self._context = context or ClientContext()
        self._enabled = enabled

    @property
    def identity(self) -> IdentityStore:
        return self._identity

    @property
    def batcher(self) -> EventBatcher:
        return self._batcher

    @property
    def heartbeat(self) -> PresenceHeartbeat:
        return self._heartbeat

    def register_teardown(self, hooks: TeardownRegistry) -> None:
        """Register the final flush and the final presence write on the host hook."""
        hooks.register("flush queued events", self._batcher.teardown)
        hooks.register("final presence record", self._heartbeat.teardown)

    def record_input(self) -> None:
        self._activity.record_input()

    def set_visibility(self, visible: bool) -> None:
        self._activity.set_visibility(visible)

    def track_business_interaction(self, event_type: str, business_id: str) -> None:
        """Queue an interaction with a business.

        Raises:
            ValueError: If event_type is not one of view, call, whatsapp, share.
        """
        if event_type not in INTERACTION_TYPES:
            raise ValueError(
                f"Unknown interaction type '{event_type}', expected one of {INTERACTION_TYPES}"
            )
        interaction = BusinessInteraction(
            event_type=event_type,  # type: ignore[arg-type]
            business_id=business_id,
            device_id=self._identity.get_device_id(),
            user_name=self._identity.get_user_name(),
            created_at=datetime.now(UTC),
        )
        self._batcher.enqueue(EventCategory.INTERACTION, interaction.model_dump(mode="json"))

    def _enqueue_visit(self, device_id: str, user_name: str | None) -> None:
        visit = VisitLog(
            device_id=device_id,
            user_name=user_name,
            page_path=self._context.page_path,
            referrer=self._context.referrer,
            visited_at=datetime.now(UTC),
        )
        self._batcher.enqueue(EventCategory.VISIT, visit.model_dump(mode="json", exclude={"id"}))

    async def _record_user(self, device_id: str, user_name: str) -> None:
        """Create or update the user row for this device."""
        by_device = SinkQuery().eq("device_id", device_id)
        result = await self._sink.fetch_single(USER_TRACKING_COLLECTION, by_device)
        now = datetime.now(UTC).isoformat()

        try:
            if isinstance(result, Found):
                total_visits = result.record.get("total_visits") or 0
                await self._sink.update(
                    USER_TRACKING_COLLECTION,
                    {
                        "user_name": user_name,
                        "last_visit_at": now,
                        "total_visits": total_visits + 1,
                    },
                    by_device,
                )
            elif isinstance(result, NotFound):
                user = UserTrackingData(
                    user_name=user_name,
                    device_id=device_id,
                    user_agent=self._context.user_agent,
                    total_visits=1,
                )
                await self._sink.insert(
                    USER_TRACKING_COLLECTION,
                    [user.model_dump(mode="json", exclude_none=True)],
                )
                logger.info(f"Registered new user '{user_name}' for device {device_id}")
            elif isinstance(result, Failed):
                logger.error(f"Error fetching user: {result.error}")
        except SinkError as e:
            logger.error(f"Error saving user: {e}")

    async def track_user_visit(self, user_name: str) -> None:
        """Record a named visit and start live tracking.

        When analytics is disabled the name is still saved locally.
        """
        if not self._enabled:
            self._identity.set_user_name(user_name)
            return

        device_id = self._identity.get_device_id()
        await self._record_user(device_id, user_name)
        self._enqueue_visit(device_id, user_name)
        self._identity.set_user_name(user_name)
        await self._heartbeat.start_live_tracking()

    async def initialize_tracking(self) -> None:
        """Resume tracking for a returning user with a stored name."""
        if not self._enabled:
            return

        user_name = self._identity.get_user_name()
        if not user_name:
            logger.debug("No stored user name, waiting for track_user_visit")
            return

        device_id = self._identity.get_device_id()
        self._enqueue_visit(device_id, user_name)
        try:
            await self._sink.update(
                USER_TRACKING_COLLECTION,
                {"last_visit_at": datetime.now(UTC).isoformat()},
                SinkQuery().eq("device_id", device_id),
            )
        except SinkError as e:
            logger.error(f"Error updating last visit: {e}")
        await self._heartbeat.start_live_tracking()

    async def aclose(self) -> None:
        """Wait for in-flight flushes."""
        await self._batcher.aclose()
