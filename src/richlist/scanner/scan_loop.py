"""Sequential paginated trustline scan with cooperative cancellation."""

from __future__ import annotations

import threading
from typing import Any, Callable, Protocol

from loguru import logger

from ..core.errors import ScanCancelled
from .aggregator import to_raw_holding
from .ledger_client import TrustlinePage, TrustlineRecord


class PageFetcher(Protocol):
    def fetch_page(self, cursor: Any = None) -> TrustlinePage: ...


class CancelToken:
    """Cancellation flag checked by the scan loop between page fetches."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelled()


def scan_trustlines(
    fetcher: PageFetcher,
    token: CancelToken,
    on_progress: Callable[[int], None] | None = None,
) -> list[TrustlineRecord]:
    """Fetch every page in cursor order and return all records.

    The token is checked before each request; a request already in flight
    always runs to completion. ``on_progress`` receives the running count of
    holders (lines with a positive holding) after each page and is left
    unset for quiet background rescans.
    """
    records: list[TrustlineRecord] = []
    holders = 0
    cursor: Any = None
    page_number = 0
    while True:
        token.raise_if_cancelled()
        page = fetcher.fetch_page(cursor)
        page_number += 1
        records.extend(page.records)
        holders += sum(1 for record in page.records if to_raw_holding(record).balance > 0)
        logger.debug(
            "Scan page {} | lines={} | total={} | holders={}",
            page_number,
            len(page.records),
            len(records),
            holders,
        )
        if on_progress is not None:
            on_progress(holders)
        if page.next_cursor is None:
            break
        cursor = page.next_cursor
    return records
