"""
JSON-lines logging for the monitor daemon.

Every record becomes one JSON object on stderr with ``timestamp``,
``level``, ``logger`` and ``message``. Context passed through
``extra=`` (for example the period average and sample count logged by
the aggregator) is copied into the object as top-level keys, and an
attached exception is rendered under ``exc_info``.

httpx logs one INFO line per request; at any level above DEBUG those
are held back to WARNING so a collector POST every period does not
drown out the daemon's own output.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-102)
- 2026-10-19: Carry ``extra`` context fields, quiet httpx (STORY-112)

TODO:
- None
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

_NOISY_LOGGERS = ("httpx", "httpcore")


class JSONFormatter(logging.Formatter):
    """Render a log record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in entry:
                entry[key] = value
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: int | str = logging.INFO) -> None:
    """Send all logging to stderr as JSON lines.

    Replaces any handlers already on the root logger, so calling it
    twice does not duplicate output.

    Args:
        level: Root level, as an int or a name such as ``"DEBUG"``.
    """
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)

    quiet = logging.NOTSET if root.level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)
