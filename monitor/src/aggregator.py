"""
Sampling and period-aggregation core of the monitor daemon.

Two timers drive a single accumulator:

1. **Sampling timer** (every ``sample_interval_s``): reads the current
   household consumption and folds it into the running sum/count.
2. **Aggregation timer** (every ``aggregation_period_s``): turns the
   running sum/count into a rounded average, appends it to the bounded
   history, writes the history through to the store and hands the
   average to the collector in the background.

Lifecycle: ``UNINITIALIZED -> LOADING -> ARMED -> STOPPED``. Timers are
only armed once the persisted history has been restored, and a failed
restore just means starting with an empty history.

Everything runs on one event loop, so callbacks never preempt each
other. The aggregation callback snapshots and resets the accumulator
before its first ``await``; samples taken while the history is being
saved or the collector is being called count towards the next period.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-109)
- 2026-10-19: stop() finishes an in-flight aggregation; on_delivery hook (STORY-112)

TODO:
- None
"""

import asyncio
import enum
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from monitor.src.collector import CollectorClient, DeliveryOutcome
from monitor.src.history import History, HistorySummary
from monitor.src.persistence import load_history, save_history
from monitor.src.scheduler import Scheduler, Timer
from monitor.src.store import KeyValueStore

logger = logging.getLogger(__name__)


class AggregatorState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    ARMED = "armed"
    STOPPED = "stopped"


@dataclass
class Accumulator:
    """Running sum and count of readings since the last aggregation."""

    sum: float = 0.0
    count: int = 0

    def fold(self, reading: float) -> None:
        self.sum += reading
        self.count += 1

    def snapshot(self) -> tuple[float, int]:
        return self.sum, self.count

    def reset(self) -> None:
        self.sum = 0.0
        self.count = 0


class Aggregator:
    """Owns the accumulator, the history and both timers.

    Args:
        scheduler: Source of periodic callbacks.
        read_sample: Zero-argument callable returning the current
            consumption in kW. Called once per sampling tick.
        store: Durable store the history is written to.
        collector: Remote collector client for finalized averages.
        sample_interval_s: Seconds between two samples.
        aggregation_period_s: Seconds between two aggregation boundaries.
        history_capacity: Maximum number of averages retained.
        clock: Returns the local time reported to the collector.
        on_delivery: Called with the average and its ``DeliveryOutcome``
            once each delivery attempt has finished.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        read_sample: Callable[[], float],
        store: KeyValueStore,
        collector: CollectorClient,
        *,
        sample_interval_s: float = 1.0,
        aggregation_period_s: float = 3600.0,
        history_capacity: int = 14,
        clock: Callable[[], datetime] = datetime.now,
        on_delivery: Callable[[float, DeliveryOutcome], None] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._read_sample = read_sample
        self._store = store
        self._collector = collector
        self._sample_interval_s = sample_interval_s
        self._aggregation_period_s = aggregation_period_s
        self._clock = clock
        self._on_delivery = on_delivery

        self._state = AggregatorState.UNINITIALIZED
        self._accumulator = Accumulator()
        self._history = History(history_capacity)
        self._last_average: float | None = None

        self._sampling_timer: Timer | None = None
        self._aggregation_timer: Timer | None = None
        self._aggregating: asyncio.Task | None = None
        self._deliveries: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Restore the persisted history, then arm both timers.

        Calling ``start()`` on an aggregator that is already loading,
        armed or stopped does nothing.
        """
        if self._state is not AggregatorState.UNINITIALIZED:
            logger.debug("start() ignored in state %s", self._state.value)
            return

        self._state = AggregatorState.LOADING
        entries = await load_history(self._store, self._history.capacity)

        if self._state is not AggregatorState.LOADING:
            # stop() was called while loading.
            return

        self._history = History(self._history.capacity, entries)
        self._state = AggregatorState.ARMED
        self.arm_sampling()
        self._aggregation_timer = self._scheduler.call_every(
            self._aggregation_period_s, self.aggregate_tick, name="aggregation"
        )
        logger.info(
            "Aggregator armed: sample every %ss, aggregate every %ss, "
            "history %d/%d",
            self._sample_interval_s,
            self._aggregation_period_s,
            len(self._history),
            self._history.capacity,
        )

    def arm_sampling(self) -> bool:
        """Create the sampling timer unless one is already running.

        Returns:
            ``True`` if a new timer was created.
        """
        if self._state is not AggregatorState.ARMED:
            logger.warning(
                "Cannot arm sampling in state %s", self._state.value
            )
            return False
        if self._sampling_timer is not None and not self._sampling_timer.cancelled:
            return False
        self._sampling_timer = self._scheduler.call_every(
            self._sample_interval_s, self.sample_tick, name="sampling"
        )
        return True

    async def stop(self) -> None:
        """Cancel both timers and wait for in-flight work.

        An aggregation that already emitted its average is allowed to
        finish saving and forwarding it, then pending deliveries are
        awaited. No state is mutated after ``stop()`` returns. Idempotent.
        """
        if self._state is AggregatorState.STOPPED:
            return
        self._state = AggregatorState.STOPPED

        for timer in (self._sampling_timer, self._aggregation_timer):
            if timer is not None:
                timer.cancel()

        if self._aggregating is not None and not self._aggregating.done():
            logger.info("Waiting for in-flight aggregation to be written")
            await asyncio.gather(self._aggregating, return_exceptions=True)
        if self._deliveries:
            await asyncio.gather(*self._deliveries, return_exceptions=True)
        logger.info(
            "Aggregator stopped with %d unaggregated sample(s) dropped",
            self._accumulator.count,
        )

    # ------------------------------------------------------------------
    # Timer callbacks
    # ------------------------------------------------------------------

    def sample_tick(self) -> None:
        """Fold one reading into the accumulator."""
        if self._state is not AggregatorState.ARMED:
            return
        try:
            reading = float(self._read_sample())
        except Exception:
            logger.warning("Failed to read current consumption", exc_info=True)
            return
        if not math.isfinite(reading) or reading < 0:
            logger.warning("Discarding invalid reading %r", reading)
            return

        self._accumulator.fold(reading)
        logger.debug("Current total consumption: %.2f kW", reading)

    async def aggregate_tick(self) -> float | None:
        """Close the current period.

        Returns:
            The emitted average, or ``None`` when no sample was taken
            during the period (nothing is appended, saved or sent).
        """
        if self._state is not AggregatorState.ARMED:
            return None

        total, count = self._accumulator.snapshot()
        if count == 0:
            logger.debug("No samples this period, nothing to aggregate")
            return None

        average = round(total / count, 2)
        self._accumulator.reset()
        self._last_average = average

        evicted = self._history.append(average)
        logger.info(
            "Period average %.2f kW over %d samples (history %d/%d%s)",
            average,
            count,
            len(self._history),
            self._history.capacity,
            "" if evicted is None else f", evicted {evicted}",
            extra={"average_kw": average, "samples": count},
        )

        # Shielded: cancelling the aggregation timer must not abandon an
        # average that is already in the history.
        self._aggregating = asyncio.get_running_loop().create_task(
            self._write_through(average, self._history.snapshot())
        )
        await asyncio.shield(self._aggregating)
        return average

    # ------------------------------------------------------------------
    # Write-through and collector hand-off
    # ------------------------------------------------------------------

    async def _write_through(self, average: float, entries: list[float]) -> None:
        await save_history(self._store, entries)
        self._forward(average)

    def _forward(self, average: float) -> None:
        now = self._clock()
        task = asyncio.get_running_loop().create_task(
            self._deliver(average, now)
        )
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _deliver(self, average: float, now: datetime) -> None:
        try:
            outcome = await self._collector.submit(average, now)
        except Exception:
            logger.exception("Unexpected error delivering average %.2f", average)
            outcome = DeliveryOutcome.FAILED
        if outcome is DeliveryOutcome.FAILED:
            logger.warning("Average %.2f was not delivered, dropping it", average)

        if self._on_delivery is None:
            return
        try:
            self._on_delivery(average, outcome)
        except Exception:
            logger.exception("Delivery callback failed for average %.2f", average)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> AggregatorState:
        return self._state

    @property
    def history(self) -> list[float]:
        """Snapshot of the history, oldest first."""
        return self._history.snapshot()

    @property
    def history_capacity(self) -> int:
        return self._history.capacity

    @property
    def accumulator(self) -> Accumulator:
        """Copy of the running accumulator."""
        return Accumulator(self._accumulator.sum, self._accumulator.count)

    @property
    def last_average(self) -> float | None:
        return self._last_average

    @property
    def pending_deliveries(self) -> int:
        return len(self._deliveries)

    def summary(self) -> HistorySummary:
        return self._history.summary()
