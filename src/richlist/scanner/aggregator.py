"""Turns raw trustlines into a ranked, tiered holder list."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import TYPE_CHECKING, Iterable, Mapping

from ..core.settings import FALLBACK_SUPPLY, ISSUER_ACCOUNT
from .known_accounts import KNOWN_ACCOUNTS, KnownAccount
from .ledger_client import TrustlineRecord

if TYPE_CHECKING:
    from ..gui.services.metrics_provider import TokenMetrics


@dataclass(frozen=True)
class RawHolding:
    """Positive CSC balance held by one account."""

    account: str
    balance: float


@dataclass(frozen=True)
class Holder:
    """Ranked rich list entry."""

    rank: int
    account: str
    balance: float
    percentage: float
    tier: str
    wallet_label: str | None = None
    wallet_type: str | None = None


# Inclusive lower bounds, highest first.
TIER_TABLE: tuple[tuple[float, str], ...] = (
    (1_000_000_000, "Kraken"),
    (500_000_000, "Megalodon"),
    (250_000_000, "Sperm Whale"),
    (100_000_000, "Whale"),
    (50_000_000, "Orca"),
    (25_000_000, "Shark"),
    (10_000_000, "Dolphin"),
    (5_000_000, "Swordfish"),
    (1_000_000, "Turtle"),
    (500_000, "Octopus"),
    (100_000, "Crab"),
    (50_000, "Shrimp"),
    (10_000, "Plankton"),
)
DEFAULT_TIER = "Microbe"


def parse_balance(value: object) -> float:
    """Parse a ledger balance string; anything unusable counts as zero."""
    if value is None:
        return 0.0
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def to_raw_holding(record: TrustlineRecord) -> RawHolding:
    # Holder balances are negative from the issuer's side of the trustline.
    signed = parse_balance(record.balance)
    return RawHolding(account=record.account, balance=-signed if signed < 0 else 0.0)


def tier_index(balance: float) -> int:
    """0 for the default tier, ``len(TIER_TABLE)`` for the top tier."""
    for position, (threshold, _label) in enumerate(TIER_TABLE):
        if balance >= threshold:
            return len(TIER_TABLE) - position
    return 0


def classify_tier(balance: float) -> str:
    for threshold, label in TIER_TABLE:
        if balance >= threshold:
            return label
    return DEFAULT_TIER


def supply_basis(metrics: TokenMetrics | None, fallback: float = FALLBACK_SUPPLY) -> float:
    """Total supply from the latest metrics, or the fixed fallback."""
    if metrics is not None and metrics.total_supply and metrics.total_supply > 0:
        return float(metrics.total_supply)
    return fallback


def aggregate(
    records: Iterable[TrustlineRecord],
    supply: float,
    exclude_issuer: bool,
    known_accounts: Mapping[str, KnownAccount] = KNOWN_ACCOUNTS,
    issuer: str = ISSUER_ACCOUNT,
) -> list[Holder]:
    """Build the full rich list from one scan's records in a single pass."""
    holdings = [holding for holding in map(to_raw_holding, records) if holding.balance > 0]
    # sorted() is stable, so equal balances keep ledger order.
    holdings = sorted(holdings, key=lambda holding: holding.balance, reverse=True)
    if exclude_issuer:
        holdings = [holding for holding in holdings if holding.account != issuer]

    holders: list[Holder] = []
    for rank, holding in enumerate(holdings, start=1):
        known = known_accounts.get(holding.account)
        holders.append(
            Holder(
                rank=rank,
                account=holding.account,
                balance=holding.balance,
                percentage=holding.balance / supply * 100 if supply > 0 else 0.0,
                tier=classify_tier(holding.balance),
                wallet_label=known.label if known else None,
                wallet_type=known.wallet_type if known else None,
            )
        )
    return holders


def trustline_supply(holders: Iterable[Holder]) -> float:
    """Sum of all listed balances."""
    return sum(holder.balance for holder in holders)
