"""Activity tracker contract (protocol)."""

from typing import Protocol


class ActivityTrackerProtocol(Protocol):
    """Protocol for tracking user input and page visibility."""

    def record_input(self, now: float | None = None) -> None:
        """Register pointer, keyboard, scroll or touch input."""
        ...

    def set_visibility(self, visible: bool, now: float | None = None) -> None:
        """Register a page visibility change."""
        ...

    def is_eligible_for_ping(self, now: float | None = None) -> bool:
        """Return True if the page is visible and input was seen recently."""
        ...
