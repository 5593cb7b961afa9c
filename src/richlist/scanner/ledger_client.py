"""XRPL JSON-RPC client fetching trustline pages for the issuer account."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger

from ..core.errors import LedgerError
from ..core.settings import Settings
from ..core.update_controller import http_slot


@dataclass(frozen=True)
class TrustlineRecord:
    """Single trustline as returned by ``account_lines``."""

    account: str
    balance: str


@dataclass(frozen=True)
class TrustlinePage:
    """One page of trustlines plus the continuation cursor, if any."""

    records: list[TrustlineRecord] = field(default_factory=list)
    next_cursor: Any = None


class LedgerClient:
    """Fetches ``account_lines`` pages from a rippled JSON-RPC endpoint."""

    def __init__(self, settings: Settings | None = None, client: httpx.Client | None = None) -> None:
        self._settings = settings or Settings()
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=self._settings.timeout_s,
            headers={"accept": "application/json"},
        )

    def fetch_page(self, cursor: Any = None) -> TrustlinePage:
        """Fetch the page addressed by ``cursor`` (first page when ``None``)."""
        params: dict[str, Any] = {
            "account": self._settings.issuer_account,
            "ledger_index": "validated",
            "limit": self._settings.page_limit,
        }
        if cursor is not None:
            params["marker"] = cursor
        payload = {"method": "account_lines", "params": [params]}
        try:
            with http_slot():
                response = self._client.post(self._settings.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            raise LedgerError(f"XRPL request failed: {exc}") from exc
        except ValueError as exc:
            raise LedgerError(f"XRPL returned invalid JSON: {exc}") from exc
        return self._parse_page(body)

    @staticmethod
    def _parse_page(body: Any) -> TrustlinePage:
        result = body.get("result") if isinstance(body, dict) else None
        if not isinstance(result, dict):
            raise LedgerError("XRPL response missing result")
        if result.get("status") == "error":
            message = result.get("error_message") or result.get("error") or "unknown error"
            raise LedgerError(f"XRPL error: {message}")
        lines = result.get("lines")
        if not isinstance(lines, list):
            raise LedgerError("XRPL response missing trustline list")
        records = [
            TrustlineRecord(account=str(line.get("account", "")), balance=str(line.get("balance", "0")))
            for line in lines
            if isinstance(line, dict)
        ]
        next_cursor = result.get("marker")
        logger.debug("account_lines page | lines={} | more={}", len(records), next_cursor is not None)
        return TrustlinePage(records=records, next_cursor=next_cursor)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> LedgerClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
