"""Scan lifecycle state machine owning the published rich list."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
import threading
import time
from typing import TYPE_CHECKING, Callable

from loguru import logger

from ..core.errors import ScanCancelled
from ..core.settings import FALLBACK_SUPPLY
from ..core.update_controller import SafeUpdateController, get_update_controller
from .aggregator import Holder, aggregate, supply_basis
from .scan_loop import CancelToken, PageFetcher, scan_trustlines

if TYPE_CHECKING:
    from ..gui.services.metrics_provider import TokenMetrics

MSG_INITIALIZING = "Initializing connection to XRPL..."
MSG_PROCESSING = "Processing rich list data..."
MSG_COMPLETE = "Scan complete."
MSG_STOPPED = "Scan stopped by user."
MSG_ERROR = "Error during scan."


class ScanStatus(Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    COMPLETE = "complete"
    ABORTED = "aborted"
    ERRORED = "errored"


@dataclass(frozen=True)
class ScanState:
    """Snapshot of the scan lifecycle shown to the user."""

    status: ScanStatus = ScanStatus.IDLE
    records_seen: int = 0
    message: str = ""
    error: str | None = None


@dataclass(frozen=True, eq=False)
class ScanResult:
    """Last published rich list."""

    holders: tuple[Holder, ...] = field(default_factory=tuple)
    last_updated: datetime | None = None


class ScanController:
    """Runs scans one at a time and publishes results atomically.

    All state lives here; the presentation layer and the live update
    scheduler only call the public operations and read the accessors.
    Listeners are invoked after each change, outside the internal lock,
    possibly from the scan worker thread.
    """

    JOB_KEY = "trustline-scan"

    def __init__(
        self,
        fetcher: PageFetcher,
        metrics_source: Callable[[], TokenMetrics | None] | None = None,
        jobs: SafeUpdateController | None = None,
        exclude_issuer: bool = True,
        live_update: bool = False,
        fallback_supply: float = FALLBACK_SUPPLY,
    ) -> None:
        self._fetcher = fetcher
        self._metrics_source = metrics_source
        self._jobs = jobs or get_update_controller()
        self._fallback_supply = fallback_supply
        self._lock = threading.RLock()
        self._state = ScanState()
        self._result = ScanResult()
        self._exclude_issuer = exclude_issuer
        self._live_update = live_update
        self._token: CancelToken | None = None
        self._listeners: list[Callable[[], None]] = []

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def result(self) -> ScanResult:
        return self._result

    @property
    def holders(self) -> tuple[Holder, ...]:
        return self._result.holders

    @property
    def exclude_issuer(self) -> bool:
        return self._exclude_issuer

    @property
    def live_update(self) -> bool:
        return self._live_update

    @property
    def is_scanning(self) -> bool:
        return self._state.status is ScanStatus.SCANNING

    def add_listener(self, callback: Callable[[], None]) -> None:
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def start(self) -> Future | None:
        """Begin a scan; returns the job future, or ``None`` if one is running."""
        with self._lock:
            if self.is_scanning:
                return None
            background = bool(self._result.holders)
            exclude_issuer = self._exclude_issuer
            previous = self._state
            token = CancelToken()
            self._token = token
            self._state = ScanState(
                status=ScanStatus.SCANNING,
                records_seen=0,
                message=previous.message if background else MSG_INITIALIZING,
            )
            future = self._jobs.submit(
                self.JOB_KEY, lambda: self._run(token, background, exclude_issuer)
            )
            if future is None:
                self._state = previous
                self._token = None
                logger.warning("Scan job already in flight, start ignored")
                return None
        logger.info("Scan started | mode={}", "background" if background else "initial")
        self._notify()
        return future

    def stop(self) -> None:
        """Request cancellation; the scan commits the aborted state itself."""
        with self._lock:
            if not self.is_scanning or self._token is None:
                return
            self._token.cancel()
            self._live_update = False
        logger.info("Scan stop requested")
        self._notify()

    def toggle_exclude_issuer(self) -> bool:
        """Flip the issuer filter; applies from the next scan on."""
        with self._lock:
            self._exclude_issuer = not self._exclude_issuer
            value = self._exclude_issuer
        self._notify()
        return value

    def toggle_live_update(self) -> bool:
        return self.set_live_update(not self._live_update)

    def set_live_update(self, enabled: bool) -> bool:
        with self._lock:
            changed = self._live_update != enabled
            self._live_update = enabled
        if changed:
            logger.info("Live update {}", "enabled" if enabled else "disabled")
            self._notify()
        return enabled

    def _run(self, token: CancelToken, background: bool, exclude_issuer: bool) -> None:
        started = time.monotonic()
        on_progress = None if background else self._on_progress
        try:
            records = scan_trustlines(self._fetcher, token, on_progress=on_progress)
            if not background:
                with self._lock:
                    self._state = replace(self._state, message=MSG_PROCESSING)
                self._notify()
            metrics = self._metrics_source() if self._metrics_source else None
            supply = supply_basis(metrics, self._fallback_supply)
            holders = aggregate(records, supply, exclude_issuer)
        except ScanCancelled:
            logger.info("Scan aborted")
            self._finish(ScanStatus.ABORTED, MSG_STOPPED)
            return
        except Exception as exc:  # noqa: BLE001
            logger.warning("Scan failed: {}", exc)
            self._finish(ScanStatus.ERRORED, MSG_ERROR, error=str(exc))
            return

        logger.info(
            "Scan complete | trustlines={} | holders={} | elapsed={:.1f}s",
            len(records),
            len(holders),
            time.monotonic() - started,
        )
        self._finish(
            ScanStatus.COMPLETE,
            MSG_COMPLETE,
            result=ScanResult(holders=tuple(holders), last_updated=datetime.now()),
        )

    def _finish(
        self,
        status: ScanStatus,
        message: str,
        error: str | None = None,
        result: ScanResult | None = None,
    ) -> None:
        # The job key is free before listeners see the terminal state.
        self._jobs.clear_key(self.JOB_KEY)
        with self._lock:
            if result is not None:
                self._result = result
                records_seen = len(result.holders)
            else:
                records_seen = self._state.records_seen
            self._state = ScanState(
                status=status,
                records_seen=records_seen,
                message=message,
                error=error,
            )
            if status is not ScanStatus.COMPLETE:
                self._live_update = False
        self._notify()

    def _on_progress(self, count: int) -> None:
        with self._lock:
            self._state = replace(
                self._state,
                records_seen=count,
                message=f"Scanning ledger... found {count} holders so far",
            )
        self._notify()

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            try:
                callback()
            except Exception as exc:  # noqa: BLE001
                logger.exception("Scan listener failed: {}", exc)
