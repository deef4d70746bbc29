"""Idle tracking on wall-clock time.

Wall clock rather than `time.monotonic()`: monotonic time stops while the
machine is suspended, so a laptop closed overnight would come back with an
unlocked vault. The deadline is absolute and re-armed on every `touch()`.
"""

from __future__ import annotations

import time
from collections.abc import Callable

# Upper bound on how long an expired session can go unnoticed
POLL_INTERVAL_SECONDS = 60.0


class SessionClock:
    def __init__(self, threshold_seconds: float, now: Callable[[], float] = time.time) -> None:
        self._now = now
        self.threshold_seconds = threshold_seconds
        self.last_activity = now()

    @property
    def deadline(self) -> float:
        return self.last_activity + self.threshold_seconds

    @property
    def poll_interval(self) -> float:
        return min(POLL_INTERVAL_SECONDS, self.threshold_seconds)

    def touch(self) -> None:
        self.last_activity = self._now()

    def set_threshold(self, threshold_seconds: float) -> None:
        self.threshold_seconds = threshold_seconds

    def check_expired(self, now: float | None = None) -> bool:
        return (now if now is not None else self._now()) >= self.deadline
