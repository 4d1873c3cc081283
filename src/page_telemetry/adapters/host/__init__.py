"""Host process integration."""

from page_telemetry.adapters.host.teardown import TeardownHooks

__all__ = ["TeardownHooks"]
