from __future__ import annotations

import logging
from typing import Any, Callable, Protocol

_LOGGER = logging.getLogger(__name__)


class Scheduler(Protocol):
    """The slice of tkinter's Misc we need: after() / after_cancel()."""

    def after(self, ms: int, func: Callable[[], Any]) -> Any: ...

    def after_cancel(self, id: Any) -> None: ...


class RecurringEffect:
    """
    Calls `callback` every `interval_ms` on a tkinter-style scheduler.
    At most one timer handle is live: start() clears any previous one and
    stop() releases it, so nothing fires after stop().
    """

    def __init__(self, scheduler: Scheduler, interval_ms: int, callback: Callable[[], Any]):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self._scheduler = scheduler
        self.interval_ms = interval_ms
        self._callback = callback
        self._job: Any = None
        self._active = False

    @property
    def running(self) -> bool:
        return self._active

    def start(self) -> None:
        self._cancel()
        self._active = True
        self._job = self._scheduler.after(self.interval_ms, self._tick)

    def stop(self) -> None:
        self._active = False
        self._cancel()

    def _cancel(self) -> None:
        if self._job is not None:
            try:
                self._scheduler.after_cancel(self._job)
            except Exception:
                _LOGGER.debug("after_cancel failed for %r", self._job, exc_info=True)
            self._job = None

    def _tick(self) -> None:
        self._job = None
        if not self._active:
            return
        try:
            self._callback()
        except Exception:
            _LOGGER.exception("Recurring effect callback failed")
        # the callback may have called stop() or start()
        if self._active and self._job is None:
            self._job = self._scheduler.after(self.interval_ms, self._tick)
