"""Teardown hook registry for the host process."""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class TeardownHooks:
    """Collects synchronous callbacks to run once before the process goes away.

    Callbacks run in registration order. A failing callback is logged and the
    remaining callbacks still run.
    """

    def __init__(self) -> None:
        self._callbacks: list[tuple[str, Callable[[], None]]] = []
        self._has_run = False

    @property
    def has_run(self) -> bool:
        return self._has_run

    def register(self, name: str, callback: Callable[[], None]) -> None:
        """Register a callback under a name used in logs."""
        self._callbacks.append((name, callback))

    def run(self) -> None:
        """Run all callbacks. Subsequent calls do nothing."""
        if self._has_run:
            return
        self._has_run = True
        for name, callback in self._callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Teardown hook '{name}' failed: {e}")
            else:
                logger.debug(f"Teardown hook '{name}' completed")
