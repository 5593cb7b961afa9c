from datetime import datetime
import time

from richlist.scanner.live_update import LiveUpdateScheduler
from richlist.scanner.scan_controller import ScanController, ScanResult, ScanState, ScanStatus

from conftest import FakeFetcher, records

TIMEOUT = 5


class StubController:
    """Exposes the controller surface the scheduler reads."""

    def __init__(self) -> None:
        self.state = ScanState()
        self.result = ScanResult()
        self.live_update = False
        self.start_calls = 0
        self._listeners = []

    def add_listener(self, callback) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback) -> None:
        self._listeners.remove(callback)

    def start(self):
        self.start_calls += 1
        self.update(status=ScanStatus.SCANNING)

    def update(self, status=None, holders=None, live_update=None) -> None:
        if status is not None:
            self.state = ScanState(status=status)
        if holders is not None:
            self.result = ScanResult(holders=holders, last_updated=datetime.now())
        if live_update is not None:
            self.live_update = live_update
        for callback in list(self._listeners):
            callback()


def test_disabled_mode_never_arms_timer(timer_factory):
    controller = StubController()
    LiveUpdateScheduler(controller, timer_factory=timer_factory)

    controller.update(status=ScanStatus.COMPLETE, holders=("h",))

    assert timer_factory.timers == []
    assert controller.start_calls == 0


def test_complete_arms_single_cooldown_timer(timer_factory):
    controller = StubController()
    scheduler = LiveUpdateScheduler(controller, delay_s=10.0, timer_factory=timer_factory)
    controller.update(status=ScanStatus.COMPLETE, holders=("h",))

    controller.update(live_update=True)

    assert len(timer_factory.active) == 1
    assert timer_factory.active[0].delay == 10.0
    assert scheduler.timer_armed
    assert controller.start_calls == 0

    timer_factory.active[0].fire()

    assert controller.start_calls == 1
    assert timer_factory.active == []


def test_disabling_before_cooldown_prevents_rescan(timer_factory):
    controller = StubController()
    LiveUpdateScheduler(controller, timer_factory=timer_factory)
    controller.update(status=ScanStatus.COMPLETE, holders=("h",), live_update=True)
    timer = timer_factory.active[0]

    controller.update(live_update=False)

    assert timer.cancelled
    timer.callback()
    assert controller.start_calls == 0


def test_enabled_without_data_starts_immediately(timer_factory):
    controller = StubController()
    LiveUpdateScheduler(controller, timer_factory=timer_factory)

    controller.update(live_update=True)

    assert controller.start_calls == 1
    assert timer_factory.timers == []


def test_enabled_on_construction_starts_immediately(timer_factory):
    controller = StubController()
    controller.live_update = True

    LiveUpdateScheduler(controller, timer_factory=timer_factory)

    assert controller.start_calls == 1


def test_aborted_with_existing_data_waits_for_user(timer_factory):
    controller = StubController()
    LiveUpdateScheduler(controller, timer_factory=timer_factory)

    controller.update(status=ScanStatus.ABORTED, holders=("h",), live_update=True)

    assert controller.start_calls == 0
    assert timer_factory.timers == []


def test_scanning_clears_pending_timer(timer_factory):
    controller = StubController()
    LiveUpdateScheduler(controller, timer_factory=timer_factory)
    controller.update(status=ScanStatus.COMPLETE, holders=("h",), live_update=True)
    timer = timer_factory.active[0]

    controller.update(status=ScanStatus.SCANNING)

    assert timer.cancelled
    assert timer_factory.active == []


def test_changed_inputs_rearm_and_keep_one_timer(timer_factory):
    controller = StubController()
    LiveUpdateScheduler(controller, timer_factory=timer_factory)
    controller.update(status=ScanStatus.COMPLETE, holders=("h",), live_update=True)

    controller.update(holders=("h", "i"))

    assert len(timer_factory.timers) == 2
    assert timer_factory.timers[0].cancelled
    assert len(timer_factory.active) == 1


def test_unrelated_notifications_keep_armed_timer(timer_factory):
    controller = StubController()
    LiveUpdateScheduler(controller, timer_factory=timer_factory)
    controller.update(status=ScanStatus.COMPLETE, holders=("h",), live_update=True)

    controller.update()
    controller.update()

    assert len(timer_factory.timers) == 1
    assert len(timer_factory.active) == 1


def test_close_cancels_and_unsubscribes(timer_factory):
    controller = StubController()
    scheduler = LiveUpdateScheduler(controller, timer_factory=timer_factory)
    controller.update(status=ScanStatus.COMPLETE, holders=("h",), live_update=True)

    scheduler.close()
    controller.update(holders=("h", "i"))

    assert timer_factory.active == []
    assert len(timer_factory.timers) == 1


def wait_until(predicate) -> bool:
    for _ in range(int(TIMEOUT / 0.01)):
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_rescan_cycle_with_real_controller(jobs, timer_factory):
    fetcher = FakeFetcher([records(("rA", "-5"), ("rB", "-7"))])
    controller = ScanController(fetcher, jobs=jobs)
    LiveUpdateScheduler(controller, delay_s=10.0, timer_factory=timer_factory)

    controller.set_live_update(True)

    assert wait_until(lambda: len(timer_factory.active) == 1)
    assert controller.state.status is ScanStatus.COMPLETE
    assert fetcher.calls == [None]
    first = controller.result

    timer_factory.active[0].fire()

    assert wait_until(lambda: len(timer_factory.timers) == 2 and len(timer_factory.active) == 1)
    assert fetcher.calls == [None, None]
    assert controller.result is not first
    assert [h.account for h in controller.holders] == ["rB", "rA"]


def test_timer_firing_during_complete_notification_starts_rescan(jobs, timer_factory):
    fetcher = FakeFetcher([records(("rA", "-5"))])
    controller = ScanController(fetcher, jobs=jobs)
    scheduler = LiveUpdateScheduler(controller, delay_s=0.0, timer_factory=timer_factory)
    fired = []

    def fire_pending_timer() -> None:
        if controller.state.status is ScanStatus.COMPLETE and not fired:
            for timer in timer_factory.active:
                fired.append(timer)
                timer.fire()

    controller.add_listener(fire_pending_timer)
    controller.set_live_update(True)

    assert wait_until(lambda: len(fetcher.calls) == 2 and len(timer_factory.active) == 1)
    assert len(fired) == 1
    assert controller.state.status is ScanStatus.COMPLETE
    scheduler.close()
