"""Client context domain model."""

from pydantic import BaseModel, ConfigDict


class ClientContext(BaseModel):
    """Describes the page and client that visits are reported from."""

    model_config = ConfigDict(frozen=True)

    page_path: str = "/"
    referrer: str | None = None
    user_agent: str = "unknown"
