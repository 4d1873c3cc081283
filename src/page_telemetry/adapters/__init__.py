"""Adapters layer - external system integrations."""

from page_telemetry.adapters.config import AppConfig
from page_telemetry.adapters.sink import InMemoryDataSink, PostgrestDataSink
from page_telemetry.adapters.storage import InMemoryKeyValueStore, JsonFileKeyValueStore

__all__ = [
    "AppConfig",
    "InMemoryDataSink",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "PostgrestDataSink",
]
