"""
Shared test fixtures for monitor daemon tests.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-101)

TODO:
- None
"""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from monitor.src.collector import CollectorClient, DeliveryOutcome
from monitor.src.scheduler import ManualScheduler
from monitor.src.store import KeyValueStore

# All MonitorSettings environment variable names, used for cleanup.
_ALL_MONITOR_ENV_VARS = (
    "COLLECTOR_URL",
    "SAMPLE_INTERVAL_S",
    "AGGREGATION_PERIOD_S",
    "HISTORY_CAPACITY",
    "BASELINE_LOAD_KW",
    "STORE_PATH",
    "HEALTH_FILE_PATH",
    "REQUEST_TIMEOUT_S",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_monitor_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove all monitor env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_MONITOR_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set every MonitorSettings environment variable."""
    env = {
        "COLLECTOR_URL": "http://collector.example.com:4000/api",
        "SAMPLE_INTERVAL_S": "1",
        "AGGREGATION_PERIOD_S": "10",
        "HISTORY_CAPACITY": "24",
        "BASELINE_LOAD_KW": "0.5",
        "STORE_PATH": "/tmp/test-monitor.db",
        "HEALTH_FILE_PATH": "/tmp/test-health.json",
        "REQUEST_TIMEOUT_S": "2.5",
        "LOG_LEVEL": "debug",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[KeyValueStore]:
    """A fresh SQLite-backed store in the test's temp dir."""
    kv = KeyValueStore(tmp_path / "monitor.db")
    yield kv
    kv.close()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    """Virtual-time scheduler starting at t=0."""
    return ManualScheduler()


@pytest.fixture()
def collector() -> MagicMock:
    """A collector whose submit() always reports delivery."""
    mock = MagicMock(spec=CollectorClient)
    mock.submit = AsyncMock(return_value=DeliveryOutcome.DELIVERED)
    mock.last_outcome = None
    mock.last_attempt_ts = None
    return mock
