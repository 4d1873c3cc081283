"""Tests for configuration adapter."""

from pathlib import Path

import pytest

from page_telemetry.adapters.config import AppConfig


def test_config_loads_defaults() -> None:
    """Given no environment variables, when loading config, then defaults are used."""
    config = AppConfig.for_testing()

    assert config.analytics_enabled is True
    assert config.sink_url is None
    assert config.flush_interval_seconds == 5.0
    assert config.max_queue_size == 10
    assert config.ping_interval_seconds == 20.0
    assert config.active_threshold_seconds == 60.0
    assert config.min_activity_gap_seconds == 10.0


def test_config_loads_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Given environment variables, when loading config, then they are used."""
    monkeypatch.setenv("ANALYTICS_ENABLED", "false")
    monkeypatch.setenv("SINK_URL", "https://example.supabase.co/")
    monkeypatch.setenv("SINK_API_KEY", "anon-key")
    monkeypatch.setenv("MAX_QUEUE_SIZE", "25")

    config = AppConfig.for_testing()

    assert config.analytics_enabled is False
    assert config.sink_url == "https://example.supabase.co"
    assert config.sink_api_key == "anon-key"
    assert config.max_queue_size == 25


def test_config_treats_blank_sink_url_as_unset() -> None:
    """Given a blank sink URL, when loading config, then it is None."""
    assert AppConfig.for_testing(sink_url="  ").sink_url is None


def test_config_rejects_non_http_sink_url() -> None:
    """Given a non-HTTP sink URL, when loading config, then validation fails."""
    with pytest.raises(ValueError, match="sink_url must start with http"):
        AppConfig.for_testing(sink_url="ftp://example.com")


def test_config_rejects_non_positive_intervals() -> None:
    """Given a zero interval, when loading config, then validation fails."""
    with pytest.raises(ValueError, match="intervals must be greater than 0 seconds"):
        AppConfig.for_testing(ping_interval_seconds=0)


def test_config_rejects_empty_queue_threshold() -> None:
    """Given max_queue_size 0, when loading config, then validation fails."""
    with pytest.raises(ValueError, match="max_queue_size must be at least 1"):
        AppConfig.for_testing(max_queue_size=0)


def test_config_applies_toml_sections(tmp_path: Path) -> None:
    """Given a TOML file, when loading it, then its sections override the defaults."""
    config_path = tmp_path / "telemetry.toml"
    config_path.write_text(
        """
analytics_enabled = false

[batching]
flush_interval_seconds = 2.5
max_queue_size = 4

[presence]
ping_interval_seconds = 30

[sink]
url = "http://localhost:54321/"
timeout_seconds = 3

[client]
page_path = "/shops"
""",
        encoding="utf-8",
    )
    config = AppConfig.for_testing(config_file=str(config_path))

    data = config.load_config_file()

    assert data["batching"]["max_queue_size"] == 4
    assert config.analytics_enabled is False
    assert config.flush_interval_seconds == 2.5
    assert config.max_queue_size == 4
    assert config.ping_interval_seconds == 30
    assert config.sink_url == "http://localhost:54321"
    assert config.sink_timeout_seconds == 3
    assert config.page_path == "/shops"


def test_config_validates_toml_values(tmp_path: Path) -> None:
    """Given an invalid value in TOML, when loading it, then validation fails."""
    config_path = tmp_path / "telemetry.toml"
    config_path.write_text("[batching]\nmax_queue_size = 0\n", encoding="utf-8")
    config = AppConfig.for_testing(config_file=str(config_path))

    with pytest.raises(ValueError, match="max_queue_size must be at least 1"):
        config.load_config_file()


def test_config_rejects_non_table_section(tmp_path: Path) -> None:
    """Given a section that is not a table, when loading, then ValueError is raised."""
    config_path = tmp_path / "telemetry.toml"
    config_path.write_text('presence = "fast"\n', encoding="utf-8")
    config = AppConfig.for_testing(config_file=str(config_path))

    with pytest.raises(ValueError, match="TOML config 'presence' must be a table"):
        config.load_config_file()


def test_config_raises_error_when_file_not_found() -> None:
    """Given non-existent config file, when loading config, then FileNotFoundError is raised."""
    config = AppConfig.for_testing(config_file="nonexistent.toml")

    with pytest.raises(FileNotFoundError, match="Configuration file not found"):
        config.load_config_file()


def test_config_without_file_loads_nothing() -> None:
    """Given no config file, when loading, then an empty dict is returned."""
    assert AppConfig.for_testing().load_config_file() == {}
