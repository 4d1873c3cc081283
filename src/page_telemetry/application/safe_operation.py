"""Helper for sink reads that fall back to a default on failure."""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from page_telemetry.domain.models.error_details import SinkError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def safe_analytics_operation(
    operation: Callable[[], Awaitable[T]], fallback: T, description: str
) -> T:
    """Run a sink operation, logging failures and returning fallback instead of raising."""
    try:
        return await operation()
    except SinkError as e:
        logger.error(f"Error {description}: {e}")
        return fallback
