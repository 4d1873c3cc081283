"""Presence heartbeat for live-user tracking."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from page_telemetry.domain.contracts.presence_heartbeat import PresenceHeartbeatProtocol
from page_telemetry.domain.models.error_details import SinkError
from page_telemetry.domain.models.records import PresenceRecord

if TYPE_CHECKING:
    from page_telemetry.application.identity_store import IdentityStore
    from page_telemetry.domain.contracts.activity_tracker import ActivityTrackerProtocol
    from page_telemetry.domain.ports import DataSink

logger = logging.getLogger(__name__)

LIVE_USERS_COLLECTION = "live_users"
PRESENCE_KEY = "device_id"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class PresenceHeartbeat(PresenceHeartbeatProtocol):
    """Periodically upserts an active presence record for this device.

    Pings are skipped while the page is hidden, while the user has been idle
    past the activity gap, or while analytics is disabled. At most one
    recurring ping task is alive at any time.
    """

    def __init__(
        self,
        sink: DataSink,
        activity: ActivityTrackerProtocol,
        identity: IdentityStore,
        ping_interval_seconds: float = 20.0,
        enabled: bool = True,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the heartbeat.

        Args:
            sink: Sink that stores presence records.
            activity: Source of the visibility and recent-input gates.
            identity: Provides the device id and user name for each record.
            ping_interval_seconds: Interval between scheduled pings.
            enabled: When False, nothing is sent and no task is started.
            now: Wall clock used for last_ping timestamps.
        """
        self._sink = sink
        self._activity = activity
        self._identity = identity
        self._ping_interval = ping_interval_seconds
        self._enabled = enabled
        self._now = now
        self._task: asyncio.Task[None] | None = None
        self._started = False
        self._torn_down = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start_live_tracking(self) -> None:
        """Send one ping now, then keep pinging every ping interval."""
        if not self._enabled:
            logger.debug("Analytics disabled, not starting live tracking")
            return

        if self._torn_down:
            logger.debug("Heartbeat already torn down, not starting live tracking")
            return

        self._cancel_loop()
        self._started = True
        await self.send_ping()

        if self._torn_down:
            return
        # Cancel again: a concurrent start may have created a loop while we awaited
        self._cancel_loop()
        self._task = asyncio.create_task(self._ping_loop())
        logger.info(f"Started live tracking (ping every {self._ping_interval}s)")

    async def _ping_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._ping_interval)
                await self.send_ping()
        except asyncio.CancelledError:
            logger.debug("Presence ping loop cancelled")
            raise

    def _cancel_loop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _record(self, is_active: bool) -> dict[str, object]:
        record = PresenceRecord(
            device_id=self._identity.get_device_id(),
            user_name=self._identity.get_user_name(),
            is_active=is_active,
            last_ping=self._now(),
        )
        return record.model_dump(mode="json")

    async def send_ping(self) -> bool:
        """Upsert an active presence record if all gates pass."""
        if not self._enabled or not self._activity.is_eligible_for_ping():
            logger.debug("Skipping presence ping (hidden, idle or disabled)")
            return False

        try:
            await self._sink.upsert(
                LIVE_USERS_COLLECTION, self._record(is_active=True), on_conflict=PRESENCE_KEY
            )
        except SinkError as e:
            logger.error(f"Error sending ping: {e}")
            return False
        return True

    def teardown(self) -> None:
        """Stop pinging and dispatch a final inactive record without waiting.

        A start that is still awaiting its first ping will not schedule the
        recurring task afterwards.
        """
        self._cancel_loop()
        already_torn_down = self._torn_down
        self._torn_down = True
        if already_torn_down or not self._enabled or not self._started:
            return
        self._sink.dispatch(
            LIVE_USERS_COLLECTION, [self._record(is_active=False)], on_conflict=PRESENCE_KEY
        )
        logger.info("Dispatched final inactive presence record")
