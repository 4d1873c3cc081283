"""12-factor configuration adapter using environment variables and TOML config."""

import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# TOML section -> {toml key: config attribute}
_TOML_SECTIONS: dict[str, dict[str, str]] = {
    "batching": {
        "flush_interval_seconds": "flush_interval_seconds",
        "max_queue_size": "max_queue_size",
    },
    "presence": {
        "ping_interval_seconds": "ping_interval_seconds",
        "active_threshold_seconds": "active_threshold_seconds",
        "min_activity_gap_seconds": "min_activity_gap_seconds",
    },
    "sink": {
        "url": "sink_url",
        "timeout_seconds": "sink_timeout_seconds",
        "beacon_timeout_seconds": "beacon_timeout_seconds",
    },
    "client": {
        "page_path": "page_path",
        "referrer": "referrer",
        "user_agent": "user_agent",
    },
}


class AppConfig(BaseSettings):
    """Application configuration following 12-factor principles."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    # Global switch
    analytics_enabled: bool = Field(
        default=True,
        description="Enable event batching and presence pings (identity persistence always works)",
    )

    # Sink configuration
    sink_url: str | None = Field(
        default=None,
        description="Base URL of the PostgREST-compatible data sink (records stay in memory if unset)",
    )
    sink_api_key: str | None = Field(
        default=None, description="API key sent as 'apikey' and bearer token"
    )
    sink_timeout_seconds: float = Field(
        default=10.0, description="Timeout for sink requests in seconds"
    )
    beacon_timeout_seconds: float = Field(
        default=2.0,
        description="Upper bound for fire-and-forget sends made during teardown",
    )

    # Batching
    flush_interval_seconds: float = Field(
        default=5.0, description="Debounce interval before a partial batch is flushed"
    )
    max_queue_size: int = Field(
        default=10, description="Queue length that triggers an immediate flush"
    )

    # Presence
    ping_interval_seconds: float = Field(
        default=20.0, description="Interval between presence pings in seconds"
    )
    active_threshold_seconds: float = Field(
        default=60.0,
        description="A device counts as live if it pinged within this many seconds",
    )
    min_activity_gap_seconds: float = Field(
        default=10.0,
        description="Pings are skipped if no input was seen for longer than this",
    )

    # Identity
    identity_file: str = Field(
        default=".page_telemetry/identity.json",
        description="JSON file that persists the device id and user name",
    )

    # Client context reported with visits
    page_path: str = Field(default="/", description="Page path reported with visit logs")
    referrer: str | None = Field(default=None, description="Referrer reported with visit logs")
    user_agent: str = Field(
        default="page-telemetry-agent", description="User agent stored with new user rows"
    )

    config_file: str | None = Field(
        default=None,
        description="Optional TOML file with [batching], [presence], [sink] and [client] sections",
    )

    @classmethod
    def for_testing(cls, **overrides: Any) -> "AppConfig":
        """Create a config that ignores the .env file."""
        return cls(_env_file=None, **overrides)  # type: ignore[call-arg]

    @field_validator(
        "sink_timeout_seconds",
        "beacon_timeout_seconds",
        "flush_interval_seconds",
        "ping_interval_seconds",
        "active_threshold_seconds",
        "min_activity_gap_seconds",
    )
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        """Validate that intervals are positive."""
        if v <= 0:
            raise ValueError("intervals must be greater than 0 seconds")
        return v

    @field_validator("max_queue_size")
    @classmethod
    def validate_max_queue_size(cls, v: int) -> int:
        """Validate that the queue threshold is at least 1."""
        if v < 1:
            raise ValueError("max_queue_size must be at least 1")
        return v

    @field_validator("sink_url")
    @classmethod
    def validate_sink_url(cls, v: str | None) -> str | None:
        """Strip trailing slashes and reject non-HTTP URLs."""
        if v is None or not v.strip():
            return None
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("sink_url must start with http:// or https://")
        return v

    def load_config_file(self) -> dict[str, Any]:
        """Load the TOML file and apply its settings on top of the current values.

        Returns:
            The parsed TOML data, or an empty dict if no config file is set.
        """
        if not self.config_file:
            return {}

        config_path = Path(self.config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)

        if "analytics_enabled" in toml_data:
            self.analytics_enabled = toml_data["analytics_enabled"]

        for section, keys in _TOML_SECTIONS.items():
            values = toml_data.get(section)
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ValueError(f"TOML config '{section}' must be a table")
            for toml_key, attribute in keys.items():
                if toml_key in values:
                    setattr(self, attribute, values[toml_key])

        return toml_data
