"""
Timer seam between the session engine and the event loop.

Every timer callback and every deferred blocking call goes through a
`Scheduler`, and the only production implementation runs them on the
Textual app's own loop. Timer firings and key handling therefore share one
execution context and never interleave.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from textual.app import App


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run `callback` once after `delay` seconds."""
        ...

    def defer(self, callback: Callable[[], None]) -> None:
        """Run `callback` after the next screen refresh."""
        ...


class _TextualTimer:
    def __init__(self, timer: Any) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.stop()


class TextualScheduler:
    """Scheduler backed by `App.set_timer` / `App.call_after_refresh`."""

    def __init__(self, app: App) -> None:
        self.app = app

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return _TextualTimer(self.app.set_timer(delay, callback))

    def defer(self, callback: Callable[[], None]) -> None:
        self.app.call_after_refresh(callback)


class Timer:
    """One cancellable, re-armable single-shot slot.

    Arming replaces whatever was pending, so at most one callback per slot is
    ever live.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self.scheduler = scheduler
        self._handle: TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        self.cancel()

        def fire() -> None:
            self._handle = None
            callback()

        self._handle = self.scheduler.call_later(delay, fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
