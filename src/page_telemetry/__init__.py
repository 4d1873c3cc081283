"""Client-side telemetry collector: batched events and presence heartbeats."""

__version__ = "0.1.0"
