"""
Periodic reduction of the latest per-RTU readings into durable documents.

Two independent pipelines run off the same tick:

1. **Power snapshot**: on ticks whose local minute falls on a slot boundary
   (every 10 minutes by default), store each RTU's instantaneous
   ActivePower per load category under ``<category>/<date>`` at
   ``<rtu>.ActivePower.<HH:mm>``.
2. **Daily energy rollup**: inside a short window before local midnight,
   store each RTU's energy counters per load category under
   ``<category>/<date>`` at ``<rtu>.energy``. The ingress handler also
   triggers this for a single RTU whenever a frame arrives in the window.

Offline RTUs (silent longer than the offline timeout) are written as a zero
reading labelled with their last known customer name.

Duplicate suppression has two layers. CommitMarkers is a process-lifetime
fast path: at most one write per (RTU, bucket kind, bucket key). For daily
energy, a read of the stored document is the authority across restarts: if
the RTU's energy field already exists for the date, the rollup is skipped.

A store failure is logged and leaves the marker unset so the next eligible
tick retries. QuotaExceededError is logged as a warning only.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-19: CommitMarkers keeps the newest key per (RTU, kind)

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime, time, timedelta, tzinfo
from typing import Any, Protocol

from eems.config import DEFAULT_RTU_ID
from eems.models import LoadReading, Reading, zero_reading
from eems.services.liveness import DEFAULT_OFFLINE_TIMEOUT
from eems.services.state import TelemetryState
from eems.store.documents import (
    DocumentStore,
    DocumentUpdate,
    QuotaExceededError,
    get_path,
)

logger = logging.getLogger(__name__)

DAILY_ENERGY = "daily-energy"
TEN_MINUTE_POWER = "ten-minute-power"

_DAILY_WINDOW_END = time(23, 59, 59, 999999)


# ---------------------------------------------------------------------------
# Commit markers
# ---------------------------------------------------------------------------


class CommitMarkers:
    """Process-lifetime record of which buckets were already written.

    A bucket is identified by (rtu_id, kind, key). Keys sort
    chronologically (``YYYY-MM-DD`` or ``YYYY-MM-DD HH:mm``), so only the
    newest committed key per (rtu_id, kind) is kept: any key at or before
    it counts as committed. Memory stays proportional to the number of
    RTUs, not to uptime.

    :meth:`begin` claims a bucket for writing and refuses if it is
    committed or already being written by another caller; :meth:`commit`
    and :meth:`abort` resolve the claim.
    """

    def __init__(self) -> None:
        self._last_committed: dict[tuple[str, str], str] = {}
        self._in_flight: set[tuple[str, str, str]] = set()

    def __len__(self) -> int:
        return len(self._last_committed) + len(self._in_flight)

    def is_committed(self, rtu_id: str, kind: str, key: str) -> bool:
        last = self._last_committed.get((rtu_id, kind))
        return last is not None and key <= last

    def begin(self, rtu_id: str, kind: str, key: str) -> bool:
        bucket = (rtu_id, kind, key)
        if self.is_committed(rtu_id, kind, key) or bucket in self._in_flight:
            return False
        self._in_flight.add(bucket)
        return True

    def commit(self, rtu_id: str, kind: str, key: str) -> None:
        self._in_flight.discard((rtu_id, kind, key))
        last = self._last_committed.get((rtu_id, kind))
        if last is None or key > last:
            self._last_committed[(rtu_id, kind)] = key

    def abort(self, rtu_id: str, kind: str, key: str) -> None:
        self._in_flight.discard((rtu_id, kind, key))


# ---------------------------------------------------------------------------
# Energy rollup strategies
# ---------------------------------------------------------------------------


class EnergyRollup(Protocol):
    """Computes the ``energy`` sub-document for one RTU/category/day."""

    async def __call__(
        self,
        store: DocumentStore,
        *,
        category: str,
        rtu_id: str,
        date: str,
        previous_date: str,
        load: LoadReading,
    ) -> dict[str, float]: ...


async def raw_energy_rollup(
    store: DocumentStore,
    *,
    category: str,
    rtu_id: str,
    date: str,
    previous_date: str,
    load: LoadReading,
) -> dict[str, float]:
    """Store the meter's cumulative monthly/yearly counters as-is."""
    return {"monthly": load.energy_monthly, "yearly": load.energy_yearly}


async def delta_energy_rollup(
    store: DocumentStore,
    *,
    category: str,
    rtu_id: str,
    date: str,
    previous_date: str,
    load: LoadReading,
) -> dict[str, float]:
    """Store the raw counters plus the day's consumption as a delta.

    ``daily`` is today's yearly counter minus the yearly counter stored for
    the previous day. With no previous value, or when the counter went
    backwards (yearly reset, meter swap, zero fill), the raw yearly counter
    is taken as the day's value.
    """
    energy = await raw_energy_rollup(
        store,
        category=category,
        rtu_id=rtu_id,
        date=date,
        previous_date=previous_date,
        load=load,
    )
    previous = await store.get(category, previous_date)
    previous_yearly = get_path(previous, (rtu_id, "energy", "yearly"))
    current = load.energy_yearly
    if isinstance(previous_yearly, int | float) and current >= previous_yearly:
        energy["daily"] = current - previous_yearly
    else:
        energy["daily"] = max(current, 0.0)
    return energy


ENERGY_ROLLUPS: dict[str, EnergyRollup] = {
    "raw": raw_energy_rollup,
    "delta": delta_energy_rollup,
}


# ---------------------------------------------------------------------------
# Update builders
# ---------------------------------------------------------------------------


def build_power_updates(
    reading: Reading,
    rtu_id: str,
    date: str,
    slot: str,
    stamp: datetime,
) -> list[DocumentUpdate]:
    """Build the ActivePower updates for one RTU and one time slot."""
    updates: list[DocumentUpdate] = []
    for category, load in reading.categories().items():
        updates.append(
            DocumentUpdate(category, date, (rtu_id, "ActivePower", slot), load.active_power)
        )
        updates.append(
            DocumentUpdate(category, date, (rtu_id, "updatedAt"), stamp.isoformat())
        )
    return updates


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class PeriodicAggregator:
    """Commits power snapshots and daily energy rollups for every known RTU.

    Args:
        state: Shared registry and liveness tracker.
        store: Durable document store.
        tz: Zone used for date and slot keys.
        offline_timeout: Silence after which an RTU is zero-filled.
        slot_minutes: Power snapshot slot width.
        daily_window_start: Local time the daily rollup window opens.
        default_rtu_id: RTU id zero-filled when no RTU has ever reported.
        energy_rollup: Daily energy arithmetic.
        markers: Commit markers; a fresh set if None.
    """

    def __init__(
        self,
        state: TelemetryState,
        store: DocumentStore,
        *,
        tz: tzinfo = UTC,
        offline_timeout: timedelta = DEFAULT_OFFLINE_TIMEOUT,
        slot_minutes: int = 10,
        daily_window_start: time = time(23, 59, 50),
        default_rtu_id: str = DEFAULT_RTU_ID,
        energy_rollup: EnergyRollup = raw_energy_rollup,
        markers: CommitMarkers | None = None,
    ) -> None:
        self.state = state
        self.store = store
        self.tz = tz
        self.offline_timeout = offline_timeout
        self.slot_minutes = slot_minutes
        self.daily_window_start = daily_window_start
        self.default_rtu_id = default_rtu_id
        self.energy_rollup = energy_rollup
        self.markers = markers if markers is not None else CommitMarkers()

    # -- time helpers ------------------------------------------------------

    def local(self, now: datetime) -> datetime:
        return now.astimezone(self.tz)

    def is_slot_boundary(self, now: datetime) -> bool:
        return self.local(now).minute % self.slot_minutes == 0

    def in_daily_window(self, now: datetime) -> bool:
        """Return True if *now* falls in the end-of-day rollup window."""
        local_time = self.local(now).time()
        return self.daily_window_start <= local_time <= _DAILY_WINDOW_END

    # -- entry point -------------------------------------------------------

    async def tick(self, now: datetime) -> None:
        """Run one scheduler pass at *now*.

        *now* is read once by the caller and used for every liveness check
        and bucket key in the pass. Failures in one pipeline are logged and
        do not affect the other.
        """
        if self.is_slot_boundary(now):
            try:
                await self.snapshot_power(now)
            except Exception:
                logger.error("Power snapshot pass failed", exc_info=True)
        if self.in_daily_window(now):
            try:
                await self.snapshot_daily(now)
            except Exception:
                logger.error("Daily energy pass failed", exc_info=True)

    def _select_reading(self, rtu_id: str, now: datetime) -> Reading:
        """Return the RTU's latest reading, or a zero reading if offline."""
        if not self.state.liveness.is_offline(rtu_id, now, self.offline_timeout):
            reading = self.state.registry.latest(rtu_id)
            if reading is not None:
                return reading
        logger.warning("%s offline, submitting zero reading", rtu_id)
        return zero_reading(
            rtu_id,
            received_at=now,
            customer_name=self.state.registry.last_customer_name(rtu_id),
        )

    # -- power snapshot ----------------------------------------------------

    async def snapshot_power(self, now: datetime) -> int:
        """Commit this slot's ActivePower for every known RTU.

        Iterates over a snapshot of RTU ids taken at the start of the pass;
        each RTU's latest reading is fetched right before it is written.
        With no RTU ever seen, a zero reading is written for the default
        RTU id.

        Args:
            now: Pass time.

        Returns:
            int: Number of RTUs written in this pass.
        """
        local = self.local(now)
        date = local.strftime("%Y-%m-%d")
        slot = local.strftime("%H:%M")

        rtu_ids = self.state.registry.known_rtu_ids()
        if not rtu_ids:
            logger.warning(
                "No RTU data received, submitting zero reading for %s",
                self.default_rtu_id,
            )
            rtu_ids = [self.default_rtu_id]

        written = 0
        for rtu_id in rtu_ids:
            if await self._commit_power(rtu_id, now, date, slot):
                written += 1
        return written

    async def _commit_power(self, rtu_id: str, now: datetime, date: str, slot: str) -> bool:
        key = f"{date} {slot}"
        if not self.markers.begin(rtu_id, TEN_MINUTE_POWER, key):
            return False
        try:
            reading = self._select_reading(rtu_id, now)
            updates = build_power_updates(reading, rtu_id, date, slot, now)
            if updates:
                await self.store.apply(updates)
        except QuotaExceededError:
            self.markers.abort(rtu_id, TEN_MINUTE_POWER, key)
            logger.warning(
                "Store quota exceeded saving ActivePower for %s, will retry", rtu_id
            )
            return False
        except Exception:
            self.markers.abort(rtu_id, TEN_MINUTE_POWER, key)
            logger.error("Error saving ActivePower for %s", rtu_id, exc_info=True)
            return False
        self.markers.commit(rtu_id, TEN_MINUTE_POWER, key)
        logger.info("ActivePower saved for %s %s %s", rtu_id, date, slot)
        return True

    # -- daily energy ------------------------------------------------------

    async def snapshot_daily(
        self,
        now: datetime,
        rtu_ids: Iterable[str] | None = None,
    ) -> int:
        """Commit today's energy counters, once per RTU per local date.

        A no-op outside the daily window.

        Args:
            now: Pass time.
            rtu_ids: RTUs to roll up; every known RTU if None.

        Returns:
            int: Number of RTUs written.
        """
        if not self.in_daily_window(now):
            return 0
        local = self.local(now)
        date = local.strftime("%Y-%m-%d")
        previous_date = (local.date() - timedelta(days=1)).isoformat()
        targets = list(rtu_ids) if rtu_ids is not None else self.state.registry.known_rtu_ids()

        written = 0
        for rtu_id in targets:
            if await self._commit_daily(rtu_id, now, date, previous_date):
                written += 1
        return written

    async def _commit_daily(
        self,
        rtu_id: str,
        now: datetime,
        date: str,
        previous_date: str,
    ) -> bool:
        if not self.markers.begin(rtu_id, DAILY_ENERGY, date):
            return False
        try:
            reading = self._select_reading(rtu_id, now)
            categories = reading.categories()
            if await self._daily_already_stored(rtu_id, date, categories):
                self.markers.commit(rtu_id, DAILY_ENERGY, date)
                logger.info("Daily energy already saved for %s: %s", rtu_id, date)
                return False
            updates = await self._build_energy_updates(
                rtu_id, date, previous_date, categories, now
            )
            if updates:
                await self.store.apply(updates)
        except QuotaExceededError:
            self.markers.abort(rtu_id, DAILY_ENERGY, date)
            logger.warning(
                "Store quota exceeded saving daily energy for %s, will retry", rtu_id
            )
            return False
        except Exception:
            self.markers.abort(rtu_id, DAILY_ENERGY, date)
            logger.error("Error saving daily energy for %s", rtu_id, exc_info=True)
            return False
        self.markers.commit(rtu_id, DAILY_ENERGY, date)
        logger.info("Daily energy submitted for %s: %s", rtu_id, date)
        return True

    async def _daily_already_stored(
        self,
        rtu_id: str,
        date: str,
        categories: dict[str, LoadReading],
    ) -> bool:
        """Check the store for an existing energy field for this RTU and date."""
        for category in categories or {"Main": None}:
            document = await self.store.get(category, date)
            if get_path(document, (rtu_id, "energy")) is not None:
                return True
        return False

    async def _build_energy_updates(
        self,
        rtu_id: str,
        date: str,
        previous_date: str,
        categories: dict[str, LoadReading],
        now: datetime,
    ) -> list[DocumentUpdate]:
        updates: list[DocumentUpdate] = []
        for category, load in categories.items():
            energy: dict[str, Any] = await self.energy_rollup(
                self.store,
                category=category,
                rtu_id=rtu_id,
                date=date,
                previous_date=previous_date,
                load=load,
            )
            updates.append(DocumentUpdate(category, date, (rtu_id, "energy"), energy))
            updates.append(
                DocumentUpdate(category, date, (rtu_id, "timestamp"), now.isoformat())
            )
        return updates
