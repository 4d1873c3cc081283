"""Record models written to and read from the data sink."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

InteractionType = Literal["view", "call", "whatsapp", "share"]

INTERACTION_TYPES: tuple[str, ...] = ("view", "call", "whatsapp", "share")


class PresenceRecord(BaseModel):
    """Presence row for one device, upserted by device_id."""

    model_config = ConfigDict(frozen=True)

    device_id: str
    user_name: str | None = None
    is_active: bool
    last_ping: datetime


class BusinessInteraction(BaseModel):
    """An interaction of a device with a business listing."""

    model_config = ConfigDict(frozen=True)

    event_type: InteractionType
    business_id: str
    device_id: str
    user_name: str | None = None
    created_at: datetime


class VisitLog(BaseModel):
    """A single page visit."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    device_id: str
    user_name: str | None = None
    visited_at: datetime | None = None
    page_path: str | None = None
    referrer: str | None = None


class UserTrackingData(BaseModel):
    """Aggregated per-device user row."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    user_name: str
    device_id: str
    first_visit_at: datetime | None = None
    last_visit_at: datetime | None = None
    total_visits: int | None = None
    user_agent: str | None = None


class AnalyticsSummary(BaseModel):
    """Server-maintained summary row."""

    model_config = ConfigDict(frozen=True)

    total_unique_users: int
    total_visits: int
    last_updated: datetime
