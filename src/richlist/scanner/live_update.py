"""Live update mode: rescans on a fixed cooldown after each completed scan."""

from __future__ import annotations

import threading
from typing import Callable, Protocol

from loguru import logger

from .scan_controller import ScanController, ScanStatus


class TimerHandle(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def _thread_timer(delay_s: float, callback: Callable[[], None]) -> TimerHandle:
    timer = threading.Timer(delay_s, callback)
    timer.daemon = True
    return timer


class LiveUpdateScheduler:
    """Keeps at most one pending rescan timer in sync with the controller."""

    DEFAULT_DELAY_S = 10.0

    def __init__(
        self,
        controller: ScanController,
        delay_s: float = DEFAULT_DELAY_S,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self._controller = controller
        self._delay_s = delay_s
        self._timer_factory = timer_factory or _thread_timer
        self._lock = threading.Lock()
        self._timer: TimerHandle | None = None
        self._generation = 0
        self._last_inputs: tuple | None = None
        controller.add_listener(self.evaluate)
        self.evaluate()

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def evaluate(self) -> None:
        """Re-arm, clear or fire depending on the controller's current state.

        Each published result is a new object, so a finished rescan always
        counts as a change even when the holder count is unchanged.
        """
        start_now = False
        with self._lock:
            state = self._controller.state
            result = self._controller.result
            inputs = (
                self._controller.live_update,
                state.status is ScanStatus.SCANNING,
                state.status is ScanStatus.COMPLETE,
                len(result.holders),
                result,
            )
            enabled, scanning, complete, holder_count, _result = inputs
            if inputs == self._last_inputs:
                return
            self._last_inputs = inputs
            self._cancel_locked()
            if not enabled or scanning:
                return
            if complete:
                self._generation += 1
                generation = self._generation
                self._timer = self._timer_factory(self._delay_s, lambda: self._fire(generation))
                self._timer.start()
                logger.debug("Live update rescan in {:.0f}s", self._delay_s)
            elif holder_count == 0:
                start_now = True
        if start_now:
            logger.info("Live update: no data yet, starting scan")
            self._controller.start()

    def close(self) -> None:
        self._controller.remove_listener(self.evaluate)
        with self._lock:
            self._cancel_locked()
            self._last_inputs = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._timer is None:
                return
            self._timer = None
        logger.info("Live update: starting rescan")
        self._controller.start()

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            self._generation += 1
