"""
Monitor health check reporting aggregator state and collector delivery.

Exposes ``get_health_status()`` which returns a dict summarizing the
current operational state of the monitor daemon. Also provides
``write_health_file()`` for Docker healthcheck integration via a JSON
file on disk.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-110)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Default health file path (inside the Docker volume).
HEALTH_FILE_PATH = "/data/health.json"


def get_health_status(
    aggregator: Any,
    collector: Any,
) -> dict[str, Any]:
    """Build a health status dict for the monitor daemon.

    Checks:
    - **state**: aggregator lifecycle state.
    - **history_length** / **history_capacity**: fill level of the
      rolling history.
    - **pending_samples**: samples folded since the last aggregation.
    - **last_average**: most recent period average (``None`` before the
      first one).
    - **last_delivery**: ``"delivered"``/``"failed"`` for the most recent
      collector attempt (``None`` if none was made yet).
    - **last_delivery_elapsed_s**: seconds since that attempt.

    Args:
        aggregator: The Aggregator instance.
        collector: The CollectorClient instance (must have
            ``last_outcome`` and ``last_attempt_ts``).

    Returns:
        Dict with health status fields.
    """
    outcome = collector.last_outcome
    elapsed: float | None = None
    if collector.last_attempt_ts is not None:
        elapsed = round(time.monotonic() - collector.last_attempt_ts, 1)

    return {
        "state": aggregator.state.value,
        "history_length": len(aggregator.history),
        "history_capacity": aggregator.history_capacity,
        "pending_samples": aggregator.accumulator.count,
        "last_average": aggregator.last_average,
        "last_delivery": None if outcome is None else outcome.value,
        "last_delivery_elapsed_s": elapsed,
        "checked_at": datetime.now(tz=UTC).isoformat(),
    }


def write_health_file(
    aggregator: Any,
    collector: Any,
    path: str = HEALTH_FILE_PATH,
) -> None:
    """Write health status to a JSON file for Docker healthcheck.

    The Docker healthcheck can verify this file exists and was
    recently updated. Errors during write are logged but not raised.

    Args:
        aggregator: The Aggregator instance.
        collector: The CollectorClient instance.
        path: Filesystem path for the health file.
    """
    try:
        status = get_health_status(aggregator, collector)
        Path(path).write_text(
            json.dumps(status), encoding="utf-8"
        )
    except Exception:
        logger.warning(
            "Health check: failed to write health file",
            exc_info=True,
        )
