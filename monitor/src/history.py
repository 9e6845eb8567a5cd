"""
Bounded rolling history of finalized period averages.

Entries are kept oldest-first. Once the history holds ``capacity``
entries, every append evicts exactly the oldest one, so the length
stays at ``capacity`` from then on.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-104)

TODO:
- None
"""

from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class HistorySummary:
    """Aggregate figures over the current history window.

    Attributes:
        peak: Highest average in the window.
        peak_index: Index of the first occurrence of ``peak``, or ``None``
            for an empty history.
        average: Mean of all entries.
        total: Sum of all entries.
    """

    peak: float
    peak_index: int | None
    average: float
    total: float


class History:
    """Ordered, capacity-bounded sequence of period averages.

    Args:
        capacity: Maximum number of entries retained.
        entries: Initial entries, oldest first. Only the newest
            ``capacity`` of them are kept.

    Raises:
        ValueError: If *capacity* is smaller than 1.
    """

    def __init__(self, capacity: int, entries: Iterable[float] = ()) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1 (got: {capacity})")
        self._entries: deque[float] = deque(entries, maxlen=capacity)

    @property
    def capacity(self) -> int:
        """Maximum number of entries retained."""
        return self._entries.maxlen

    def append(self, value: float) -> float | None:
        """Append *value* as the newest entry.

        Returns:
            The evicted oldest entry when the history was already full,
            otherwise ``None``.
        """
        evicted = None
        if len(self._entries) == self.capacity:
            evicted = self._entries[0]
        self._entries.append(value)
        return evicted

    def snapshot(self) -> list[float]:
        """Return a copy of the entries, oldest first."""
        return list(self._entries)

    def summary(self) -> HistorySummary:
        """Compute peak, peak position, mean and total over the window."""
        if not self._entries:
            return HistorySummary(peak=0.0, peak_index=None, average=0.0, total=0.0)

        entries = self.snapshot()
        peak = max(entries)
        total = sum(entries)
        return HistorySummary(
            peak=peak,
            peak_index=entries.index(peak),
            average=total / len(entries),
            total=total,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[float]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"History(capacity={self.capacity}, entries={self.snapshot()})"
