"""Static labels for well-known CSC accounts."""

from __future__ import annotations

from dataclasses import dataclass

from ..core.settings import ISSUER_ACCOUNT


@dataclass(frozen=True)
class KnownAccount:
    """Display label and wallet type (``cex`` or ``team``)."""

    label: str
    wallet_type: str


KNOWN_ACCOUNTS: dict[str, KnownAccount] = {
    ISSUER_ACCOUNT: KnownAccount("Issuer / Foundation", "team"),
    "raLPjTYeGEzf4yt4lqZz5AmfTDMhfq6F7q": KnownAccount("Bitrue", "cex"),
    "rLNaPoKeeBJZe2nz6oXAG9Jy9it8r912Fk": KnownAccount("Bitrue Hot", "cex"),
    "rMdG3ju8pgyVh29ELPWaDuA74CpWW6Fxns": KnownAccount("Uphold", "cex"),
    "rhub8VRN55sF4G7xQ1G1dfyE863FdrVk93": KnownAccount("GateHub", "cex"),
    "rPVMhWBsfF9iMXYj3aAzJVkPDTFNSyWdKy": KnownAccount("Bittrex", "cex"),
    "rNfwFmsgM97YW43d7s1832J8f4i7eG8xG3": KnownAccount("Xumm / XRPL Labs", "cex"),
}
