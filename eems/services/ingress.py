"""
Per-frame ingress handling for WebSocket telemetry sessions.

For every inbound frame the handler:
1. Relays the raw frame to all observers through the BroadcastHub, before
   any parsing, so malformed frames still reach dashboards.
2. Decodes the frame as a TelemetryPayload. Undecodable frames are logged
   and dropped; the session stays open.
3. Derives the RTU id, marks the RTU alive and appends the Reading (with
   its arrival time) to the RTU's buffer.
4. Runs the daily energy rollup for that RTU, which is a no-op outside the
   end-of-day window.

The handler is the only writer of the shared TelemetryState.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from pydantic import ValidationError

from eems.config import DEFAULT_RTU_ID
from eems.models import Reading, TelemetryPayload, extract_rtu_id
from eems.services.aggregation import PeriodicAggregator
from eems.services.broadcast import BroadcastHub
from eems.services.scheduler import utc_clock
from eems.services.state import TelemetryState

logger = logging.getLogger(__name__)

_LOG_PREVIEW_CHARS = 200


def _preview(frame: str | bytes) -> str:
    text = frame.decode("utf-8", errors="replace") if isinstance(frame, bytes) else frame
    if len(text) > _LOG_PREVIEW_CHARS:
        return text[:_LOG_PREVIEW_CHARS] + "..."
    return text


class IngressHandler:
    """Applies inbound frames to the hub, the state and the daily rollup.

    Args:
        state: Shared registry and liveness tracker.
        hub: Observer fan-out.
        aggregator: Aggregator whose daily rollup runs per frame, or None to
            skip the per-frame rollup.
        clock: Source of arrival timestamps.
        default_rtu_id: RTU id for frames without a usable Customer tag.
    """

    def __init__(
        self,
        state: TelemetryState,
        hub: BroadcastHub,
        aggregator: PeriodicAggregator | None = None,
        *,
        clock: Callable[[], datetime] = utc_clock,
        default_rtu_id: str = DEFAULT_RTU_ID,
    ) -> None:
        self.state = state
        self.hub = hub
        self.aggregator = aggregator
        self.clock = clock
        self.default_rtu_id = default_rtu_id

    async def handle_frame(self, frame: str | bytes) -> Reading | None:
        """Process one inbound frame.

        Args:
            frame: Raw frame as received, text or bytes.

        Returns:
            Reading | None: The stored reading, or None if the frame could
            not be decoded.
        """
        await self.hub.broadcast(frame)

        try:
            payload = TelemetryPayload.model_validate_json(frame)
        except ValidationError:
            logger.warning("Non-telemetry frame received: %s", _preview(frame))
            return None

        now = self.clock()
        rtu_id = extract_rtu_id(payload.customer, self.default_rtu_id)
        reading = Reading(rtu_id=rtu_id, payload=payload, received_at=now)

        self.state.liveness.mark_alive(rtu_id, now)
        self.state.registry.record_reading(rtu_id, reading)

        if self.aggregator is not None:
            try:
                await self.aggregator.snapshot_daily(now, rtu_ids=[rtu_id])
            except Exception:
                logger.error("Daily snapshot for %s failed", rtu_id, exc_info=True)

        return reading
