"""Tagged result of a single-row fetch.

A fetch either finds exactly one row, finds none, or fails. Callers branch on
the variant instead of inspecting error codes.
"""

from dataclasses import dataclass, field
from typing import Any

from page_telemetry.domain.models.error_details import SinkError


@dataclass(frozen=True)
class Found:
    """The row matching the query."""

    record: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NotFound:
    """No row matched the query."""


@dataclass(frozen=True)
class Failed:
    """The fetch failed for a reason other than a missing row."""

    error: SinkError


FetchResult = Found | NotFound | Failed
