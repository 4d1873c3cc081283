"""Data sink adapters."""

from page_telemetry.adapters.sink.memory_sink import InMemoryDataSink
from page_telemetry.adapters.sink.postgrest_sink import PostgrestDataSink

__all__ = ["InMemoryDataSink", "PostgrestDataSink"]
