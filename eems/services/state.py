"""
Shared in-memory telemetry state.

Bundles the device registry and liveness tracker into one object that the
ingress handler (sole writer) and the aggregator (reader) receive
explicitly, instead of reaching for module-level globals.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from eems.services.liveness import DEFAULT_OFFLINE_TIMEOUT, LivenessTracker
from eems.services.registry import DEFAULT_BUFFER_CAPACITY, DeviceRegistry


@dataclass
class TelemetryState:
    """Registry plus liveness for all RTUs seen by this process."""

    registry: DeviceRegistry = field(default_factory=DeviceRegistry)
    liveness: LivenessTracker = field(default_factory=LivenessTracker)

    @classmethod
    def create(
        cls,
        capacity: int = DEFAULT_BUFFER_CAPACITY,
        offline_timeout: timedelta = DEFAULT_OFFLINE_TIMEOUT,
    ) -> TelemetryState:
        return cls(
            registry=DeviceRegistry(capacity=capacity),
            liveness=LivenessTracker(timeout=offline_timeout),
        )
