"""Ports (interfaces) for the ports-and-adapters architecture."""

from page_telemetry.domain.ports.data_sink import DataSink
from page_telemetry.domain.ports.key_value_store import KeyValueStore
from page_telemetry.domain.ports.teardown_registry import TeardownRegistry

__all__ = [
    "DataSink",
    "KeyValueStore",
    "TeardownRegistry",
]
