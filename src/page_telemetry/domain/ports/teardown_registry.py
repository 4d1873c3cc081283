"""Teardown registry port."""

from collections.abc import Callable
from typing import Protocol


class TeardownRegistry(Protocol):
    """Port for the host's pre-exit hook."""

    def register(self, name: str, callback: Callable[[], None]) -> None:
        """Register a synchronous callback to run before the process goes away."""
        ...
