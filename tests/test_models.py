"""
Unit tests for telemetry models and Customer-tag helpers.

Tests verify:
- RTU id extraction from the Customer tag, including the placeholder and
  missing-tag defaults.
- Customer name extraction.
- Numeric fields in load blocks are coerced to zero when missing, null or
  non-numeric.
- Frames that are not JSON objects fail validation.
- Zero readings carry every category at zero and the fixed alarm shape.
- Reading.to_dict keeps unknown fields and adds the arrival time.

CHANGELOG:
- 2026-10-19: Initial creation
"""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from eems.models import (
    LOAD_CATEGORIES,
    Reading,
    TelemetryPayload,
    extract_customer_name,
    extract_rtu_id,
    zero_reading,
)

RECEIVED_AT = datetime(2026, 10, 19, 10, 0, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# RTU id extraction
# ---------------------------------------------------------------------------


class TestExtractRtuId:
    """The second Customer field is the RTU id, with RTU0001 as fallback."""

    def test_second_field_is_rtu_id(self) -> None:
        assert extract_rtu_id("Acme,RTU0042,11.0,104.0") == "RTU0042"

    def test_second_field_is_trimmed(self) -> None:
        assert extract_rtu_id("Acme,  RTU0042 ,11.0,104.0") == "RTU0042"

    def test_placeholder_id_defaults(self) -> None:
        assert extract_rtu_id("Acme,ID,11.0,104.0") == "RTU0001"

    def test_missing_customer_defaults(self) -> None:
        assert extract_rtu_id(None) == "RTU0001"

    def test_empty_customer_defaults(self) -> None:
        assert extract_rtu_id("") == "RTU0001"

    def test_single_field_defaults(self) -> None:
        assert extract_rtu_id("Acme") == "RTU0001"

    def test_blank_second_field_defaults(self) -> None:
        assert extract_rtu_id("Acme, ,11.0,104.0") == "RTU0001"

    def test_custom_default(self) -> None:
        assert extract_rtu_id(None, default="RTU9999") == "RTU9999"


class TestExtractCustomerName:
    def test_first_field(self) -> None:
        assert extract_customer_name(" Acme Mall ,RTU0042,1,2") == "Acme Mall"

    def test_blank_is_none(self) -> None:
        assert extract_customer_name(",RTU0042") is None
        assert extract_customer_name(None) is None


# ---------------------------------------------------------------------------
# Payload validation
# ---------------------------------------------------------------------------


class TestTelemetryPayload:
    """Decoding of inbound frames."""

    def test_parses_categories_by_wire_name(self) -> None:
        """Load blocks are addressed by their PascalCase wire names."""
        frame = json.dumps(
            {
                "Customer": "Acme,RTU0042,11.0,104.0",
                "Main": {"ActivePower": 12.5, "EnergyMonthly": 100, "EnergyYearly": 900},
                "Plug": {"ActivePower": 1.5},
            }
        )
        payload = TelemetryPayload.model_validate_json(frame)
        categories = payload.categories()
        assert list(categories) == ["Main", "Plug"]
        assert categories["Main"].active_power == 12.5
        assert categories["Main"].energy_yearly == 900.0
        assert categories["Plug"].energy_monthly == 0.0

    def test_missing_null_and_garbage_numbers_become_zero(self) -> None:
        """One bad field must not reject the whole frame."""
        frame = json.dumps(
            {"Main": {"ActivePower": None, "PowerFactor": "n/a", "PhaseCurrent": "x"}}
        )
        main = TelemetryPayload.model_validate_json(frame).categories()["Main"]
        assert main.active_power == 0.0
        assert main.power_factor == 0.0
        assert main.energy_monthly == 0.0
        assert main.phase_current == [0.0, 0.0, 0.0]

    def test_empty_object_is_valid(self) -> None:
        payload = TelemetryPayload.model_validate_json("{}")
        assert payload.customer is None
        assert payload.categories() == {}

    @pytest.mark.parametrize("frame", ["not json", "42", "[1, 2]", '{"Main": 5}'])
    def test_non_object_frames_fail(self, frame: str) -> None:
        with pytest.raises(ValidationError):
            TelemetryPayload.model_validate_json(frame)


# ---------------------------------------------------------------------------
# Zero reading and serialisation
# ---------------------------------------------------------------------------


class TestZeroReading:
    def test_all_categories_zero(self) -> None:
        reading = zero_reading("RTU0042", RECEIVED_AT, "Acme")
        categories = reading.categories()
        assert list(categories) == list(LOAD_CATEGORIES)
        for load in categories.values():
            assert load.active_power == 0.0
            assert load.energy_monthly == 0.0
            assert load.energy_yearly == 0.0
            assert load.phase_voltage == [0.0, 0.0, 0.0]

    def test_customer_tag_and_alarm(self) -> None:
        reading = zero_reading("RTU0042", RECEIVED_AT, "Acme")
        assert reading.payload.customer == "Acme,RTU0042,0,0"
        assert reading.rtu_id == "RTU0042"
        assert reading.payload.alarm is not None
        assert reading.payload.alarm.type == "OverCurrent"
        assert reading.payload.alarm.status is False

    def test_unknown_customer_by_default(self) -> None:
        reading = zero_reading("RTU0042", RECEIVED_AT)
        assert reading.customer_name == "Unknown"


class TestReadingToDict:
    def test_keeps_wire_names_extras_and_time(self) -> None:
        payload = TelemetryPayload.model_validate_json(
            '{"Customer": "Acme,RTU0042,1,2", "Main": {"ActivePower": 3}, "Firmware": "1.2"}'
        )
        reading = Reading(rtu_id="RTU0042", payload=payload, received_at=RECEIVED_AT)
        data = reading.to_dict()
        assert data["Customer"] == "Acme,RTU0042,1,2"
        assert data["Main"]["ActivePower"] == 3.0
        assert data["Firmware"] == "1.2"
        assert data["time"] == RECEIVED_AT.isoformat()
