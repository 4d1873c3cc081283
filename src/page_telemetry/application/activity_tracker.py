"""Activity tracking for presence eligibility."""

import logging
import time
from collections.abc import Callable

from page_telemetry.domain.contracts.activity_tracker import ActivityTrackerProtocol

logger = logging.getLogger(__name__)


class ActivityTracker(ActivityTrackerProtocol):
    """Holds the last input time and page visibility.

    The host reports input and visibility changes as discrete calls; the
    presence heartbeat only reads is_eligible_for_ping. Times are monotonic
    seconds from the injected clock.
    """

    def __init__(
        self,
        min_activity_gap_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._min_activity_gap = min_activity_gap_seconds
        self._clock = clock
        self._last_activity_at = clock()
        self._tab_visible = True

    @property
    def last_activity_at(self) -> float:
        return self._last_activity_at

    @property
    def tab_visible(self) -> bool:
        return self._tab_visible

    def record_input(self, now: float | None = None) -> None:
        self._last_activity_at = self._clock() if now is None else now

    def set_visibility(self, visible: bool, now: float | None = None) -> None:
        if visible != self._tab_visible:
            logger.debug(f"Page visibility changed: visible={visible}")
        self._tab_visible = visible
        if visible:
            self.record_input(now)

    def is_eligible_for_ping(self, now: float | None = None) -> bool:
        if not self._tab_visible:
            return False
        current = self._clock() if now is None else now
        return current - self._last_activity_at <= self._min_activity_gap
