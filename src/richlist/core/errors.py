"""Exception types shared across the scanner."""

from __future__ import annotations


class RichListError(Exception):
    """Base class for application errors."""


class LedgerError(RichListError):
    """Network or protocol failure while querying the ledger."""


class ScanCancelled(RichListError):
    """Raised by the scan loop when its cancellation token is set."""

    def __init__(self, message: str = "Scan aborted by user") -> None:
        super().__init__(message)


class ConfigError(RichListError):
    """Invalid configuration value."""
