"""Runtime configuration for the rich list scanner."""

from __future__ import annotations

from dataclasses import dataclass, replace
import os
from typing import Mapping

from .errors import ConfigError

ISSUER_ACCOUNT = "rCSCManTZ8ME9EoLrSHHYKW8PPwWMgkwr"
FALLBACK_SUPPLY = 65_000_000_000.0


@dataclass(frozen=True)
class Settings:
    """Scanner configuration with production defaults."""

    rpc_url: str = "https://xrplcluster.com/"
    issuer_account: str = ISSUER_ACCOUNT
    page_limit: int = 400
    timeout_s: float = 20.0
    live_update_delay_s: float = 10.0
    metrics_interval_s: float = 60.0
    fallback_supply: float = FALLBACK_SUPPLY
    coingecko_url: str = "https://api.coingecko.com/api/v3"
    coingecko_coin_id: str = "casinocoin"
    exchange_id: str = "bitrue"
    exchange_symbol: str = "CSC/USDT"


_ENV_PREFIX = "RICHLIST_"
_ENV_FIELDS: dict[str, type] = {
    "rpc_url": str,
    "page_limit": int,
    "timeout_s": float,
    "live_update_delay_s": float,
    "metrics_interval_s": float,
}


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build settings from defaults plus ``RICHLIST_*`` environment overrides."""
    if env is None:
        env = os.environ
    overrides: dict[str, object] = {}
    for name, kind in _ENV_FIELDS.items():
        key = f"{_ENV_PREFIX}{name.upper()}"
        raw = env.get(key)
        if raw is None or raw.strip() == "":
            continue
        try:
            value = kind(raw.strip())
        except ValueError as exc:
            raise ConfigError(f"{key}={raw!r} is not a valid {kind.__name__}") from exc
        if kind is not str and value <= 0:
            raise ConfigError(f"{key} must be positive, got {raw!r}")
        overrides[name] = value
    return replace(Settings(), **overrides)
