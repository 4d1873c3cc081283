"""Configuration adapters."""

from page_telemetry.adapters.config.app_config import AppConfig

__all__ = ["AppConfig"]
