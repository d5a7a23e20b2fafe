"""
Pydantic models for energy-meter telemetry frames and stored readings.

Defines the inbound frame schema (TelemetryPayload), the per-category load
block (LoadReading), the immutable Reading kept in the per-RTU buffer, and
helpers to derive the RTU id and customer name from the ``Customer`` tag.

Numeric fields inside a load block are coerced to 0 when missing, null or
non-numeric, so one bad field never costs a whole rollup.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eems.config import DEFAULT_RTU_ID

# Category name -> payload attribute. Order is the order documents are
# written in a batch.
LOAD_CATEGORIES: dict[str, str] = {
    "Main": "main",
    "AirCon": "air_con",
    "Lighting": "lighting",
    "Plug": "plug",
    "Other": "other",
}

_PLACEHOLDER_RTU_ID = "ID"
_UNKNOWN_CUSTOMER = "Unknown"


def _to_number(value: Any) -> float:
    """Coerce a JSON scalar to float, falling back to 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_phase_triplet(value: Any) -> list[float]:
    if not isinstance(value, list):
        return [0.0, 0.0, 0.0]
    return [_to_number(v) for v in value]


# ---------------------------------------------------------------------------
# Frame schema
# ---------------------------------------------------------------------------


class LoadReading(BaseModel):
    """Electrical readings for one load category (sub-meter channel).

    Attributes:
        phase_current: Per-phase current in amperes.
        phase_voltage: Per-phase voltage in volts.
        active_power: Instantaneous active power.
        reactive_power: Instantaneous reactive power.
        apparent_power: Instantaneous apparent power.
        power_factor: Power factor (0-1).
        energy_monthly: Cumulative energy counter for the current month.
        energy_yearly: Cumulative energy counter for the current year.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    phase_current: list[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0], alias="PhaseCurrent"
    )
    phase_voltage: list[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0], alias="PhaseVoltage"
    )
    active_power: float = Field(default=0.0, alias="ActivePower")
    reactive_power: float = Field(default=0.0, alias="ReactivePower")
    apparent_power: float = Field(default=0.0, alias="ApparentPower")
    power_factor: float = Field(default=0.0, alias="PowerFactor")
    energy_monthly: float = Field(default=0.0, alias="EnergyMonthly")
    energy_yearly: float = Field(default=0.0, alias="EnergyYearly")

    @field_validator(
        "active_power",
        "reactive_power",
        "apparent_power",
        "power_factor",
        "energy_monthly",
        "energy_yearly",
        mode="before",
    )
    @classmethod
    def _coerce_number(cls, v: Any) -> float:
        return _to_number(v)

    @field_validator("phase_current", "phase_voltage", mode="before")
    @classmethod
    def _coerce_phases(cls, v: Any) -> list[float]:
        return _to_phase_triplet(v)


class Alarm(BaseModel):
    """Alarm block reported by the meter."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    type: str | None = Field(default=None, alias="Type")
    status: bool = Field(default=False, alias="Status")


class TelemetryPayload(BaseModel):
    """A single decoded telemetry frame.

    Every field is optional. Unknown top-level keys are kept so that the
    snapshot endpoint returns the frame as it was sent.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    customer: str | None = Field(default=None, alias="Customer")
    main: LoadReading | None = Field(default=None, alias="Main")
    air_con: LoadReading | None = Field(default=None, alias="AirCon")
    lighting: LoadReading | None = Field(default=None, alias="Lighting")
    plug: LoadReading | None = Field(default=None, alias="Plug")
    other: LoadReading | None = Field(default=None, alias="Other")
    alarm: Alarm | None = Field(default=None, alias="Alarm")

    def categories(self) -> dict[str, LoadReading]:
        """Return the load categories present in this frame, by name."""
        present: dict[str, LoadReading] = {}
        for name, attr in LOAD_CATEGORIES.items():
            block = getattr(self, attr)
            if block is not None:
                present[name] = block
        return present


# ---------------------------------------------------------------------------
# Stored reading
# ---------------------------------------------------------------------------


class Reading(BaseModel):
    """A decoded frame as stored in the per-RTU buffer.

    Attributes:
        rtu_id: RTU the frame was attributed to.
        payload: The decoded frame.
        received_at: Arrival time assigned by the ingress layer.
    """

    model_config = ConfigDict(frozen=True)

    rtu_id: str
    payload: TelemetryPayload
    received_at: datetime

    @property
    def customer_name(self) -> str | None:
        return extract_customer_name(self.payload.customer)

    def categories(self) -> dict[str, LoadReading]:
        return self.payload.categories()

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the wire shape plus a ``time`` arrival stamp."""
        data = self.payload.model_dump(mode="json", by_alias=True, exclude_none=True)
        data["time"] = self.received_at.isoformat()
        return data


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def extract_rtu_id(customer: str | None, default: str = DEFAULT_RTU_ID) -> str:
    """Derive the RTU id from a ``"<name>,<rtuId>,<lat>,<lon>"`` tag.

    The second comma-separated field, trimmed, is the RTU id. A missing tag,
    a missing or blank second field, or the literal placeholder ``ID`` all
    resolve to *default*.

    Args:
        customer: The raw ``Customer`` string, or None.
        default: RTU id to fall back on.

    Returns:
        str: The RTU id.
    """
    if not customer:
        return default
    parts = customer.split(",")
    if len(parts) < 2:
        return default
    rtu_id = parts[1].strip()
    if not rtu_id or rtu_id == _PLACEHOLDER_RTU_ID:
        return default
    return rtu_id


def extract_customer_name(customer: str | None) -> str | None:
    """Return the first field of the ``Customer`` tag, or None if blank."""
    if not customer:
        return None
    name = customer.split(",")[0].strip()
    return name or None


def zero_reading(
    rtu_id: str,
    received_at: datetime,
    customer_name: str | None = None,
) -> Reading:
    """Build the canonical all-zero Reading used for offline devices.

    Every load category is present with all numeric fields at zero, and the
    alarm block is the fixed ``OverCurrent``/``False`` shape.

    Args:
        rtu_id: RTU the zero reading stands in for.
        received_at: Timestamp to stamp on the reading.
        customer_name: Label for the ``Customer`` tag; ``Unknown`` if None.

    Returns:
        Reading: The zero-filled reading.
    """
    name = customer_name or _UNKNOWN_CUSTOMER
    zero = LoadReading()
    payload = TelemetryPayload(
        customer=f"{name},{rtu_id},0,0",
        main=zero,
        air_con=zero,
        lighting=zero,
        plug=zero,
        other=zero,
        alarm=Alarm(type="OverCurrent", status=False),
    )
    return Reading(rtu_id=rtu_id, payload=payload, received_at=received_at)
