"""Exception types raised by the analytics engine and its collaborators."""

from __future__ import annotations


class LedgerAnalyticsError(Exception):
    """Base class for all ledger_analytics errors."""


class EmptyInputError(LedgerAnalyticsError, ValueError):
    """A statistic was requested over zero eligible values."""


class InvalidRecordError(LedgerAnalyticsError, ValueError):
    """A transaction record failed validation at ingestion.

    Attributes:
        row: Source row number (1-based) or document position, when known.
    """

    def __init__(self, message: str, row: int | None = None) -> None:
        super().__init__(message if row is None else f"bad row {row}: {message}")
        self.row = row
