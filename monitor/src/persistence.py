"""
Async persistence helpers on top of the key/value store.

The history is stored as a JSON array of floats, oldest first, under
``HISTORY_KEY``. Anything that cannot be read back as such an array
(missing key, invalid JSON, wrong shape, store error) is treated as an
empty history: corrupt data never stops the daemon from starting.

``PersistedSlice`` applies the same write-through rule to any other
JSON-serializable piece of state: every change is written as soon as it
is made.

Store calls run on a worker thread so the event loop keeps ticking while
SQLite is busy.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-105)

TODO:
- None
"""

import asyncio
import json
import logging
import math
from typing import Any

from monitor.src.store import KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "@consumptionHistory"


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


async def load_history(store: KeyValueStore, capacity: int) -> list[float]:
    """Load the persisted history, newest ``capacity`` entries.

    Args:
        store: Durable key/value store.
        capacity: Maximum number of entries to return.

    Returns:
        The stored entries oldest-first, or ``[]`` when nothing usable
        is stored.
    """
    try:
        raw = await asyncio.to_thread(store.get, HISTORY_KEY)
    except Exception:
        logger.warning("Failed to read consumption history", exc_info=True)
        return []

    if raw is None:
        logger.info("No stored consumption history, starting empty")
        return []

    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Stored consumption history is not valid JSON, ignoring it")
        return []

    if not isinstance(data, list) or not all(_is_number(v) for v in data):
        logger.warning("Stored consumption history has an unexpected shape, ignoring it")
        return []

    entries = [float(v) for v in data]
    if len(entries) > capacity:
        entries = entries[-capacity:]
    logger.info("Loaded %d history entries", len(entries))
    return entries


async def save_history(store: KeyValueStore, history: list[float]) -> bool:
    """Overwrite the persisted history with *history*.

    Returns:
        ``True`` when the write succeeded, ``False`` when it failed (the
        failure is logged, never raised).
    """
    payload = json.dumps(list(history))
    try:
        await asyncio.to_thread(store.set, HISTORY_KEY, payload)
    except Exception:
        logger.warning("Failed to save consumption history", exc_info=True)
        return False
    return True


class PersistedSlice:
    """A JSON value mirrored to the store on every change.

    Args:
        store: Durable key/value store.
        key: Key the value is stored under.
        default: Value used when nothing (or nothing readable) is stored.
    """

    def __init__(self, store: KeyValueStore, key: str, default: Any) -> None:
        self._store = store
        self._key = key
        self._default = default
        self._value = default

    @property
    def key(self) -> str:
        return self._key

    @property
    def value(self) -> Any:
        return self._value

    async def load(self) -> Any:
        """Restore the stored value, falling back to the default."""
        try:
            raw = await asyncio.to_thread(self._store.get, self._key)
            self._value = self._default if raw is None else json.loads(raw)
        except Exception:
            logger.warning(
                "Failed to load %s, using defaults", self._key, exc_info=True
            )
            self._value = self._default
        return self._value

    async def update(self, value: Any) -> bool:
        """Replace the value and write it through when it changed.

        Returns:
            ``True`` if the value changed and was persisted.
        """
        if value == self._value:
            return False
        self._value = value
        try:
            await asyncio.to_thread(
                self._store.set, self._key, json.dumps(value)
            )
        except Exception:
            logger.warning("Failed to save %s", self._key, exc_info=True)
            return False
        return True
