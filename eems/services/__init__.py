"""
Core telemetry services.

Exports the in-memory state, the broadcast hub, the ingress handler, the
periodic aggregator and its tick scheduler.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from eems.services.aggregation import CommitMarkers, PeriodicAggregator
from eems.services.broadcast import BroadcastHub
from eems.services.ingress import IngressHandler
from eems.services.liveness import LivenessTracker
from eems.services.registry import DeviceRegistry
from eems.services.scheduler import TickScheduler
from eems.services.state import TelemetryState

__all__ = [
    "BroadcastHub",
    "CommitMarkers",
    "DeviceRegistry",
    "IngressHandler",
    "LivenessTracker",
    "PeriodicAggregator",
    "TelemetryState",
    "TickScheduler",
]
