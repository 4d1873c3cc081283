"""Read-side aggregate models."""

from pydantic import BaseModel, ConfigDict


class PopularBusiness(BaseModel):
    """Interaction counts for one business, ranked by total."""

    model_config = ConfigDict(frozen=True)

    business_id: str
    views: int = 0
    calls: int = 0
    whatsapp: int = 0
    shares: int = 0
    total: int = 0


class HourlyVisits(BaseModel):
    """Visit count for one hour of a day."""

    model_config = ConfigDict(frozen=True)

    hour: int
    visits: int


class DailyVisits(BaseModel):
    """Visit count for one calendar day (ISO date string)."""

    model_config = ConfigDict(frozen=True)

    date: str
    visits: int
