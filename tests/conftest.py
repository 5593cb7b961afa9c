"""Shared fixtures and fakes for the scanner tests."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import threading
from types import SimpleNamespace

import pytest

from richlist.core.update_controller import SafeUpdateController
from richlist.scanner.ledger_client import TrustlinePage, TrustlineRecord


def records(*pairs: tuple[str, str]) -> list[TrustlineRecord]:
    return [TrustlineRecord(account=account, balance=balance) for account, balance in pairs]


class FakeFetcher:
    """Serves a fixed list of pages addressed by cursors ``c1``, ``c2``..."""

    def __init__(self, pages, fail_on: int | None = None, error: Exception | None = None) -> None:
        self.pages = [list(page) for page in pages]
        self.calls: list[object] = []
        self.fail_on = fail_on
        self.error = error
        self.gate: threading.Event | None = None
        self.entered = threading.Event()

    def fetch_page(self, cursor=None) -> TrustlinePage:
        self.calls.append(cursor)
        index = 0 if cursor is None else int(str(cursor)[1:])
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.fail_on is not None and index == self.fail_on:
            raise self.error or RuntimeError("fetch failed")
        next_cursor = f"c{index + 1}" if index + 1 < len(self.pages) else None
        return TrustlinePage(records=self.pages[index], next_cursor=next_cursor)


class FakeTimer:
    def __init__(self, delay: float, callback) -> None:
        self.delay = delay
        self.callback = callback
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.fired = True
            self.callback()


class FakeTimerFactory:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [
            timer
            for timer in self.timers
            if timer.started and not timer.cancelled and not timer.fired
        ]


@pytest.fixture
def jobs():
    executor = ThreadPoolExecutor(max_workers=2)
    yield SafeUpdateController(executor)
    executor.shutdown(wait=True)


@pytest.fixture
def supply_1000():
    return lambda: SimpleNamespace(total_supply=1000.0)


@pytest.fixture
def two_page_fetcher() -> FakeFetcher:
    return FakeFetcher(
        [
            records(("rA", "-500"), ("rB", "300")),
            records(("rC", "-100")),
        ]
    )


@pytest.fixture
def timer_factory() -> FakeTimerFactory:
    return FakeTimerFactory()
