"""
Best-effort client for the remote consumption collector.

Each completed period average is POSTed once as JSON:

    {"current_time": "HH:MM:SS", "Global_active_power": <float>}

``current_time`` is local wall-clock time in 24-hour format. Delivery is
advisory telemetry: a non-2xx response, a transport error, or a response
body that is not JSON is logged and reported as ``DeliveryOutcome.FAILED``.
Nothing is raised and nothing is retried.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-108)

TODO:
- None
"""

import enum
import logging
import time
from datetime import datetime

import httpx

logger = logging.getLogger(__name__)

# Default request timeout in seconds.
_DEFAULT_TIMEOUT: float = 5.0


class DeliveryOutcome(enum.Enum):
    """Result of a single delivery attempt."""

    DELIVERED = "delivered"
    FAILED = "failed"


def build_payload(average: float, now: datetime) -> dict:
    """Build the collector request body.

    Pure function: the timestamp is injected so callers control it.

    Args:
        average: Finalized period average.
        now: Local time of the aggregation boundary.

    Returns:
        Dict with ``current_time`` and ``Global_active_power`` keys.
    """
    return {
        "current_time": now.strftime("%H:%M:%S"),
        "Global_active_power": round(average, 2),
    }


class CollectorClient:
    """POSTs period averages to the remote collector.

    Args:
        url: Full collector endpoint URL.
        timeout: HTTP request timeout in seconds.
        client: Optional pre-built ``httpx.AsyncClient``. When omitted
            the collector owns its client and closes it in
            :meth:`aclose`.
    """

    def __init__(
        self,
        url: str,
        timeout: float = _DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._last_outcome: DeliveryOutcome | None = None
        self._last_attempt_ts: float | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def last_outcome(self) -> DeliveryOutcome | None:
        """Outcome of the most recent attempt, ``None`` before the first."""
        return self._last_outcome

    @property
    def last_attempt_ts(self) -> float | None:
        """``time.monotonic()`` of the most recent attempt."""
        return self._last_attempt_ts

    async def submit(
        self, average: float, now: datetime | None = None
    ) -> DeliveryOutcome:
        """Send one average to the collector.

        Args:
            average: Finalized period average.
            now: Local time to report; defaults to the current local time.

        Returns:
            ``DeliveryOutcome.DELIVERED`` on a 2xx response with a JSON
            body, ``DeliveryOutcome.FAILED`` otherwise.
        """
        payload = build_payload(average, now or datetime.now())
        outcome = await self._post(payload)
        self._last_outcome = outcome
        self._last_attempt_ts = time.monotonic()
        return outcome

    async def _post(self, payload: dict) -> DeliveryOutcome:
        try:
            response = await self._client.post(self._url, json=payload)
            response.raise_for_status()
            body = response.json()

        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Collector HTTP error %s for %s: %s",
                exc.response.status_code,
                self._url,
                exc,
            )
            return DeliveryOutcome.FAILED

        except httpx.RequestError as exc:
            logger.warning("Collector request error for %s: %s", self._url, exc)
            return DeliveryOutcome.FAILED

        except ValueError as exc:
            logger.warning("Collector returned a non-JSON body: %s", exc)
            return DeliveryOutcome.FAILED

        logger.info(
            "Delivered %s to collector, response: %s",
            payload["Global_active_power"],
            body,
        )
        return DeliveryOutcome.DELIVERED

    async def aclose(self) -> None:
        """Close the HTTP client if this collector created it."""
        if self._owns_client:
            await self._client.aclose()
