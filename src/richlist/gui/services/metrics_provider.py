"""CSC market metrics from CoinGecko, with spot price refreshed via ccxt."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
import threading
from typing import Any

import ccxt
import httpx
from loguru import logger

from ...core.settings import Settings
from ...core.update_controller import http_slot


@dataclass(frozen=True)
class TokenMetrics:
    """Market snapshot for the token."""

    price_usd: float
    price_xrp: float
    market_cap: float
    total_cap: float
    circulating_supply: float
    total_supply: float
    volume_24h: float
    vol_to_mcap: float
    ath: float
    atl: float
    change_1h: float | None
    change_24h: float | None
    change_7d: float | None
    change_30d: float | None
    last_updated: datetime


class TokenMetricsProvider:
    """Fetch market data for the token on demand."""

    ERROR_LOG_INTERVAL = timedelta(seconds=60)

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.Client | None = None,
        exchange: ccxt.Exchange | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=self._settings.timeout_s,
            headers={"accept": "application/json"},
        )
        if exchange is None and hasattr(ccxt, self._settings.exchange_id):
            exchange_class = getattr(ccxt, self._settings.exchange_id)
            exchange = exchange_class({"enableRateLimit": True, "timeout": int(self._settings.timeout_s * 1000)})
        self._exchange = exchange
        self._last_error: dict[str, str] = {}
        self._last_error_logged_at: dict[str, datetime] = {}

    def fetch(self) -> TokenMetrics | None:
        """Return the latest metrics, or ``None`` if market data is unavailable."""
        metrics = self._fetch_market_data()
        if metrics is None:
            return None
        return self._apply_exchange_ticker(metrics)

    def _fetch_market_data(self) -> TokenMetrics | None:
        url = f"{self._settings.coingecko_url.rstrip('/')}/coins/{self._settings.coingecko_coin_id}"
        params = {
            "localization": "false",
            "tickers": "false",
            "community_data": "false",
            "developer_data": "false",
        }
        try:
            with http_slot():
                response = self._client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._log_source_error("coingecko", str(exc))
            return None
        market = payload.get("market_data") if isinstance(payload, dict) else None
        if not isinstance(market, dict):
            self._log_source_error("coingecko", "response missing market_data")
            return None
        return _parse_market_data(market)

    def _apply_exchange_ticker(self, metrics: TokenMetrics) -> TokenMetrics:
        if self._exchange is None:
            return metrics
        try:
            with http_slot():
                ticker = self._exchange.fetch_ticker(self._settings.exchange_symbol)
        except ccxt.BaseError as exc:
            self._log_source_error(self._settings.exchange_id, str(exc))
            return metrics
        last = _as_float(ticker.get("last"))
        if last is None or last <= 0:
            return metrics
        volume = _as_float(ticker.get("quoteVolume"))
        updated = replace(metrics, price_usd=last)
        if volume is not None and volume > 0:
            vol_to_mcap = volume / metrics.market_cap if metrics.market_cap else 0.0
            updated = replace(updated, volume_24h=volume, vol_to_mcap=vol_to_mcap)
        return updated

    def _log_source_error(self, source: str, message: str) -> None:
        last_message = self._last_error.get(source)
        last_logged_at = self._last_error_logged_at.get(source)
        now = datetime.now()
        if message != last_message or not last_logged_at or now - last_logged_at > self.ERROR_LOG_INTERVAL:
            logger.warning("Metrics error for {}: {}", source, message)
            self._last_error[source] = message
            self._last_error_logged_at[source] = now

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class MetricsMonitor(threading.Thread):
    """Refreshes the metrics snapshot on a fixed interval."""

    def __init__(self, provider: TokenMetricsProvider, interval_s: float = 60.0) -> None:
        super().__init__(daemon=True, name="metrics-monitor")
        self._provider = provider
        self._interval_s = interval_s
        self._stop_event = threading.Event()
        self._snapshot: TokenMetrics | None = None

    def snapshot(self) -> TokenMetrics | None:
        return self._snapshot

    def refresh(self) -> TokenMetrics | None:
        """Fetch once; a failed fetch keeps the previous snapshot."""
        metrics = self._provider.fetch()
        if metrics is not None:
            self._snapshot = metrics
            logger.debug(
                "Metrics refreshed | price=${:.6f} | supply={:,.0f}",
                metrics.price_usd,
                metrics.total_supply,
            )
        return self._snapshot

    def run(self) -> None:
        while not self._stop_event.is_set():
            self.refresh()
            self._stop_event.wait(self._interval_s)

    def stop(self) -> None:
        self._stop_event.set()


def _parse_market_data(market: dict[str, Any]) -> TokenMetrics:
    price_usd = _currency(market, "current_price", "usd")
    market_cap = _currency(market, "market_cap", "usd")
    volume = _currency(market, "total_volume", "usd")
    return TokenMetrics(
        price_usd=price_usd,
        price_xrp=_currency(market, "current_price", "xrp"),
        market_cap=market_cap,
        total_cap=_currency(market, "fully_diluted_valuation", "usd"),
        circulating_supply=_as_float(market.get("circulating_supply")) or 0.0,
        total_supply=_as_float(market.get("total_supply")) or 0.0,
        volume_24h=volume,
        vol_to_mcap=volume / market_cap if market_cap else 0.0,
        ath=_currency(market, "ath", "usd"),
        atl=_currency(market, "atl", "usd"),
        change_1h=_as_float((market.get("price_change_percentage_1h_in_currency") or {}).get("usd")),
        change_24h=_as_float(market.get("price_change_percentage_24h")),
        change_7d=_as_float(market.get("price_change_percentage_7d")),
        change_30d=_as_float(market.get("price_change_percentage_30d")),
        last_updated=_parse_timestamp(market.get("last_updated")),
    )


def _currency(market: dict[str, Any], key: str, currency: str) -> float:
    values = market.get(key)
    if not isinstance(values, dict):
        return 0.0
    return _as_float(values.get(currency)) or 0.0


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now()


def _as_float(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
