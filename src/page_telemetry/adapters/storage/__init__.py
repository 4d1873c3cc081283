"""Key-value storage adapters."""

from page_telemetry.adapters.storage.json_file_store import JsonFileKeyValueStore
from page_telemetry.adapters.storage.memory_store import InMemoryKeyValueStore

__all__ = ["InMemoryKeyValueStore", "JsonFileKeyValueStore"]
