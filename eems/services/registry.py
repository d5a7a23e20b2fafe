"""
In-memory per-RTU telemetry buffer.

Holds a bounded FIFO of recent Readings for every RTU seen since process
start, plus the last customer display name each RTU reported. Entries are
never removed except by capacity eviction; the registry performs no I/O and
never raises for well-formed calls (malformed frames are filtered upstream).

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any

from eems.models import Reading

DEFAULT_BUFFER_CAPACITY = 1000


@dataclass
class DeviceState:
    """Buffered state for a single RTU.

    Attributes:
        readings: Most recent readings, oldest first.
        customer_name: Last non-blank customer name the RTU reported.
    """

    readings: deque[Reading]
    customer_name: str | None = None


@dataclass
class DeviceRegistry:
    """Per-RTU bounded reading history.

    Args:
        capacity: Maximum readings retained per RTU. Appending beyond this
            evicts the oldest reading.
    """

    capacity: int = DEFAULT_BUFFER_CAPACITY
    _devices: dict[str, DeviceState] = field(default_factory=dict)

    def record_reading(self, rtu_id: str, reading: Reading) -> None:
        """Append *reading* to the RTU's buffer, creating it on first use."""
        state = self._devices.get(rtu_id)
        if state is None:
            state = DeviceState(readings=deque(maxlen=self.capacity))
            self._devices[rtu_id] = state
        state.readings.append(reading)
        name = reading.customer_name
        if name:
            state.customer_name = name

    def latest(self, rtu_id: str) -> Reading | None:
        """Return the most recent reading for *rtu_id*, or None."""
        state = self._devices.get(rtu_id)
        if state is None or not state.readings:
            return None
        return state.readings[-1]

    def readings(self, rtu_id: str) -> list[Reading]:
        """Return a copy of the RTU's buffered readings, oldest first."""
        state = self._devices.get(rtu_id)
        return list(state.readings) if state is not None else []

    def known_rtu_ids(self) -> list[str]:
        """Return a snapshot of RTU ids seen so far, in first-seen order.

        The list is a copy, so callers may iterate it across await points
        while new RTUs are being registered.
        """
        return list(self._devices)

    def last_customer_name(self, rtu_id: str) -> str | None:
        state = self._devices.get(rtu_id)
        return state.customer_name if state is not None else None

    def total_readings(self) -> int:
        return sum(len(s.readings) for s in self._devices.values())

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        """Serialise every buffer for the snapshot endpoint."""
        return {
            rtu_id: [r.to_dict() for r in state.readings]
            for rtu_id, state in list(self._devices.items())
        }

    def __len__(self) -> int:
        return len(self._devices)
