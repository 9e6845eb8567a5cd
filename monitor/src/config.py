"""
Monitor daemon configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
The aggregation period and history capacity are plain settings so the
host decides them explicitly; the defaults are one hour and 14 entries.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-101)

TODO:
- None
"""

import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class MonitorSettings(BaseSettings):
    """Monitor daemon configuration.

    All values are loaded from environment variables. Only the collector
    URL is required; everything else has a default.

    Attributes:
        collector_url: Full URL of the remote collector endpoint
            (e.g. ``http://collector.local:4000/api``).
        sample_interval_s: Seconds between two samples.
        aggregation_period_s: Seconds between two aggregation boundaries.
        history_capacity: Maximum number of averages kept in history.
        baseline_load_kw: Always-on load added to every reading.
        store_path: SQLite file backing the key/value store.
        health_file_path: JSON health file for Docker healthchecks.
        request_timeout_s: Timeout for the collector POST.
        log_level: Root logging level name.
    """

    collector_url: str
    sample_interval_s: float = 1.0
    aggregation_period_s: float = 3600.0
    history_capacity: int = 14
    baseline_load_kw: float = 1.5
    store_path: str = "/data/monitor.db"
    health_file_path: str = "/data/health.json"
    request_timeout_s: float = 5.0
    log_level: str = "INFO"

    @field_validator("collector_url")
    @classmethod
    def collector_url_must_be_http(cls, v: str) -> str:
        """Validate that the collector URL uses an HTTP(S) scheme."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                "COLLECTOR_URL must use http:// or https:// "
                f"(got: '{v[:20]}...')"
            )
        return v

    @field_validator("sample_interval_s", "request_timeout_s")
    @classmethod
    def interval_must_be_positive(cls, v: float) -> float:
        """Validate that intervals and timeouts are strictly positive."""
        if v <= 0:
            raise ValueError("value must be > 0")
        return v

    @field_validator("history_capacity")
    @classmethod
    def history_capacity_must_be_valid(cls, v: int) -> int:
        """Validate history capacity is between 1 and 1000."""
        if v < 1 or v > 1000:
            raise ValueError("HISTORY_CAPACITY must be >= 1 and <= 1000")
        return v

    @field_validator("baseline_load_kw")
    @classmethod
    def baseline_must_not_be_negative(cls, v: float) -> float:
        """Validate the baseline load is not negative."""
        if v < 0:
            raise ValueError("BASELINE_LOAD_KW must be >= 0")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        """Normalize and validate the logging level name."""
        name = v.upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"LOG_LEVEL '{v}' is not a logging level")
        return name

    @model_validator(mode="after")
    def _period_covers_a_sample(self) -> "MonitorSettings":
        """An aggregation period shorter than one sample can never fill."""
        if self.aggregation_period_s < self.sample_interval_s:
            raise ValueError(
                "AGGREGATION_PERIOD_S must be >= SAMPLE_INTERVAL_S"
            )
        return self

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
