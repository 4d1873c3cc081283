"""Error details domain model and the sink error type."""

from pydantic import BaseModel, ConfigDict


class ErrorDetails(BaseModel):
    """Details about a failed sink call, including HTTP status code if applicable."""

    model_config = ConfigDict(frozen=True)

    status_code: int | None = None
    code: str | None = None
    reason: str


class SinkError(Exception):
    """Raised by data sink adapters when a read or write fails."""

    def __init__(self, details: ErrorDetails) -> None:
        super().__init__(details.reason)
        self.details = details

    @property
    def status_code(self) -> int | None:
        return self.details.status_code

    @property
    def code(self) -> str | None:
        return self.details.code

    def __str__(self) -> str:
        parts = [self.details.reason]
        if self.details.status_code is not None:
            parts.append(f"status {self.details.status_code}")
        if self.details.code:
            parts.append(f"code {self.details.code}")
        return " - ".join(parts)
