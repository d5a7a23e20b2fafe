"""
Per-RTU last-seen tracking and offline classification.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime, timedelta

DEFAULT_OFFLINE_TIMEOUT = timedelta(seconds=60)


class LivenessTracker:
    """Records when each RTU last delivered a parseable frame.

    Args:
        timeout: Default silence after which an RTU counts as offline.
    """

    def __init__(self, timeout: timedelta = DEFAULT_OFFLINE_TIMEOUT) -> None:
        self.timeout = timeout
        self._last_seen: dict[str, datetime] = {}

    def mark_alive(self, rtu_id: str, now: datetime) -> None:
        self._last_seen[rtu_id] = now

    def last_seen(self, rtu_id: str) -> datetime | None:
        return self._last_seen.get(rtu_id)

    def is_offline(
        self,
        rtu_id: str,
        now: datetime,
        timeout: timedelta | None = None,
    ) -> bool:
        """Return True if *rtu_id* was never seen or has been silent too long.

        Pure predicate: callers pass the same *now* for every check in one
        aggregation pass so no RTU changes state mid-pass.

        Args:
            rtu_id: RTU to classify.
            now: Reference time.
            timeout: Override for the tracker's default timeout.

        Returns:
            bool: True when offline.
        """
        last = self._last_seen.get(rtu_id)
        if last is None:
            return True
        limit = self.timeout if timeout is None else timeout
        return now - last > limit
