"""
Monitor daemon entry point: sampling and aggregation on one event loop.

Wires the household sample source, the durable store, the collector
client and the aggregator together, then runs until SIGTERM or SIGINT:

1. Restores room toggle state and the consumption history.
2. Arms the sampling and aggregation timers.
3. Refreshes the health file once each period's delivery attempt is done.

On shutdown the timers are cancelled, in-flight collector deliveries are
awaited, and the collector client and store are closed.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-111)
- 2026-10-19: Health file follows delivery outcomes, not a timer (STORY-112)

TODO:
- None
"""

import asyncio
import logging
import signal

from monitor.src.aggregator import Aggregator
from monitor.src.collector import CollectorClient, DeliveryOutcome
from monitor.src.config import MonitorSettings
from monitor.src.health import write_health_file
from monitor.src.logging_config import setup_logging
from monitor.src.rooms import Household
from monitor.src.scheduler import AsyncioScheduler, Scheduler
from monitor.src.store import KeyValueStore

logger = logging.getLogger(__name__)


def _signal_handler(signum: int, shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by signalling shutdown."""
    sig_name = signal.Signals(signum).name
    logger.info("Received %s, initiating graceful shutdown", sig_name)
    shutdown_event.set()


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    shutdown_event: asyncio.Event,
) -> None:
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _signal_handler, sig, shutdown_event)


async def run(
    settings: MonitorSettings,
    shutdown_event: asyncio.Event,
    scheduler: Scheduler | None = None,
) -> None:
    """Run the daemon until *shutdown_event* is set.

    Args:
        settings: Validated daemon configuration.
        shutdown_event: Set to request a graceful shutdown.
        scheduler: Timer source; defaults to the asyncio scheduler.
    """
    scheduler = scheduler or AsyncioScheduler()
    store = KeyValueStore(settings.store_path)
    collector = CollectorClient(
        settings.collector_url, timeout=settings.request_timeout_s
    )
    household = Household(baseline_kw=settings.baseline_load_kw)

    def _refresh_health() -> None:
        write_health_file(aggregator, collector, settings.health_file_path)

    def _on_delivery(_average: float, _outcome: DeliveryOutcome) -> None:
        _refresh_health()

    aggregator = Aggregator(
        scheduler,
        household.current_reading,
        store,
        collector,
        sample_interval_s=settings.sample_interval_s,
        aggregation_period_s=settings.aggregation_period_s,
        history_capacity=settings.history_capacity,
        on_delivery=_on_delivery,
    )

    try:
        await household.load_state(store)
        await aggregator.start()
        _refresh_health()
        logger.info(
            "Monitor daemon running, reading %.2f kW across %d rooms",
            household.current_reading(),
            len(household.rooms),
        )
        await shutdown_event.wait()
    finally:
        await aggregator.stop()
        _refresh_health()
        await collector.aclose()
        store.close()
        logger.info("Monitor daemon stopped")


async def _serve(settings: MonitorSettings) -> None:
    shutdown_event = asyncio.Event()
    _install_signal_handlers(asyncio.get_running_loop(), shutdown_event)
    await run(settings, shutdown_event)


def main() -> None:
    """Monitor daemon entry point.

    Loads configuration from environment variables, configures JSON
    logging, and runs the event loop until interrupted.
    """
    settings = MonitorSettings()
    setup_logging(settings.log_level)
    logger.info(
        "Monitor daemon starting: sample every %ss, aggregate every %ss, "
        "history capacity %d",
        settings.sample_interval_s,
        settings.aggregation_period_s,
        settings.history_capacity,
    )
    asyncio.run(_serve(settings))


if __name__ == "__main__":
    main()
