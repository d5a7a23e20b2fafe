"""
EEMS telemetry gateway.

Accepts live energy-meter telemetry over WebSocket, relays every frame to
connected dashboards, keeps a bounded per-RTU history in memory, and rolls
the latest readings up into per-day energy and per-10-minute power
documents.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""
