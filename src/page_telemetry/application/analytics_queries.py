"""Read-side analytics computed from raw sink rows."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, ValidationError

from page_telemetry.application.presence_heartbeat import LIVE_USERS_COLLECTION
from page_telemetry.application.safe_operation import safe_analytics_operation
from page_telemetry.domain.models.fetch_result import Failed, Found
from page_telemetry.domain.models.queued_event import EventCategory
from page_telemetry.domain.models.records import AnalyticsSummary, UserTrackingData, VisitLog
from page_telemetry.domain.models.sink_query import SinkQuery
from page_telemetry.domain.models.stats import DailyVisits, HourlyVisits, PopularBusiness

if TYPE_CHECKING:
    from page_telemetry.domain.ports import DataSink

logger = logging.getLogger(__name__)

USER_TRACKING_COLLECTION = "user_tracking"
SUMMARY_COLLECTION = "analytics_summary"

# event_type -> PopularBusiness field
_INTERACTION_FIELDS = {
    "view": "views",
    "call": "calls",
    "whatsapp": "whatsapp",
    "share": "shares",
}

ModelT = TypeVar("ModelT", bound=BaseModel)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    except ValueError:
        logger.debug(f"Skipping row with unparseable timestamp {value!r}")
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _parse_rows(model: type[ModelT], rows: list[dict[str, Any]]) -> list[ModelT]:
    parsed: list[ModelT] = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping malformed {model.__name__} row: {e.error_count()} error(s)")
    return parsed


def rank_popular_businesses(rows: list[dict[str, Any]], limit: int) -> list[PopularBusiness]:
    """Count interactions per business and return the top entries by total."""
    counts: dict[str, Counter[str]] = {}
    for row in rows:
        business_id = row.get("business_id")
        field = _INTERACTION_FIELDS.get(row.get("event_type", ""))
        if not business_id or field is None:
            continue
        counts.setdefault(business_id, Counter())[field] += 1

    ranked = [
        PopularBusiness(
            business_id=business_id,
            views=stats["views"],
            calls=stats["calls"],
            whatsapp=stats["whatsapp"],
            shares=stats["shares"],
            total=sum(stats.values()),
        )
        for business_id, stats in counts.items()
    ]
    ranked.sort(key=lambda b: b.total, reverse=True)
    return ranked[:limit]


def bucket_by_hour(rows: list[dict[str, Any]]) -> list[HourlyVisits]:
    """Count visits per hour of day; all 24 hours are present."""
    hours = [0] * 24
    for row in rows:
        visited_at = _parse_timestamp(row.get("visited_at"))
        if visited_at is not None:
            hours[visited_at.astimezone(UTC).hour] += 1
    return [HourlyVisits(hour=hour, visits=count) for hour, count in enumerate(hours)]


def bucket_by_day(rows: list[dict[str, Any]]) -> list[DailyVisits]:
    """Count visits per calendar day, ascending by date."""
    days: Counter[str] = Counter()
    for row in rows:
        visited_at = _parse_timestamp(row.get("visited_at"))
        if visited_at is not None:
            days[visited_at.astimezone(UTC).date().isoformat()] += 1
    return [DailyVisits(date=day, visits=days[day]) for day in sorted(days)]


class AnalyticsQueries:
    """Read-only views over the sink. Failures return empty or default results."""

    def __init__(
        self,
        sink: DataSink,
        active_threshold_seconds: float = 60.0,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._sink = sink
        self._active_threshold = timedelta(seconds=active_threshold_seconds)
        self._now = now

    async def get_popular_businesses(self, limit: int = 10) -> list[PopularBusiness]:
        async def operation() -> list[PopularBusiness]:
            rows = await self._sink.select(
                EventCategory.INTERACTION.collection,
                SinkQuery()
                .select("business_id", "event_type")
                .order("created_at", descending=True),
            )
            return rank_popular_businesses(rows, limit)

        return await safe_analytics_operation(operation, [], "fetching popular businesses")

    async def get_live_users_count(self, now: datetime | None = None) -> int:
        """Count devices marked active that pinged within the active threshold."""
        threshold = (now or self._now()) - self._active_threshold

        async def operation() -> int:
            return await self._sink.count(
                LIVE_USERS_COLLECTION,
                SinkQuery().eq("is_active", True).where("last_ping", "gte", threshold),
            )

        return await safe_analytics_operation(operation, 0, "counting live users")

    async def get_hourly_stats(self, day: date | str | None = None) -> list[HourlyVisits]:
        """Visits of one day (default today) bucketed by hour.

        Both the day window and the hour buckets are UTC, not the local time
        of the viewer: a visit at 23:30 in UTC+2 lands in hour 21.
        """
        if day is None:
            target = self._now().astimezone(UTC).date()
        elif isinstance(day, str):
            target = date.fromisoformat(day)
        else:
            target = day
        start = datetime(target.year, target.month, target.day, tzinfo=UTC)
        end = start + timedelta(days=1)

        async def operation() -> list[HourlyVisits]:
            rows = await self._sink.select(
                EventCategory.VISIT.collection,
                SinkQuery()
                .select("visited_at")
                .where("visited_at", "gte", start)
                .where("visited_at", "lt", end),
            )
            return bucket_by_hour(rows)

        return await safe_analytics_operation(operation, [], "fetching hourly stats")

    async def get_daily_stats(self, days: int = 7) -> list[DailyVisits]:
        """Visits of the last `days` days grouped by date."""
        start = self._now() - timedelta(days=days)

        async def operation() -> list[DailyVisits]:
            rows = await self._sink.select(
                EventCategory.VISIT.collection,
                SinkQuery().select("visited_at").where("visited_at", "gte", start),
            )
            return bucket_by_day(rows)

        return await safe_analytics_operation(operation, [], "fetching daily stats")

    async def get_analytics_summary(self) -> AnalyticsSummary | None:
        result = await self._sink.fetch_single(SUMMARY_COLLECTION, SinkQuery().eq("id", 1))
        if isinstance(result, Found):
            try:
                return AnalyticsSummary.model_validate(result.record)
            except ValidationError as e:
                logger.error(f"Error parsing analytics summary: {e}")
                return None
        if isinstance(result, Failed):
            logger.error(f"Error fetching analytics: {result.error}")
        return None

    async def get_all_users(self) -> list[UserTrackingData]:
        async def operation() -> list[UserTrackingData]:
            rows = await self._sink.select(
                USER_TRACKING_COLLECTION,
                SinkQuery().order("last_visit_at", descending=True),
            )
            return _parse_rows(UserTrackingData, rows)

        return await safe_analytics_operation(operation, [], "fetching users")

    async def get_recent_visits(self, limit: int = 50) -> list[VisitLog]:
        async def operation() -> list[VisitLog]:
            rows = await self._sink.select(
                EventCategory.VISIT.collection,
                SinkQuery().order("visited_at", descending=True).take(limit),
            )
            return _parse_rows(VisitLog, rows)

        return await safe_analytics_operation(operation, [], "fetching visits")
