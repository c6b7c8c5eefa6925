"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads environment variables (after loading `.env` from the project root) and
validates the analysis thresholds.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

@dataclass(frozen=True)
class Settings:
    """Container for analytics configuration read from the environment.

    Attributes:
        mongo_uri: MongoDB connection URI.
        mongo_db: Target MongoDB database name.
        mongo_tls: Whether to connect with TLS (certifi CA bundle).
        transactions_collection: Collection holding the transaction snapshot.
        margin_floor: Margin below which a month counts as unusually low.
        margin_percentile: Percentile (0-1) of product margins used as the
            margin-light benchmark.
    """
    mongo_uri: str
    mongo_db: str
    mongo_tls: bool
    transactions_collection: str
    margin_floor: Decimal = Decimal("0.15")
    margin_percentile: Decimal = Decimal("0.25")


def _decimal_env(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default).strip()
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None
    if not value.is_finite():
        raise RuntimeError(f"{name} must be a finite number, got {raw!r}")
    return value


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if a numeric variable does not parse or
            `MARGIN_PERCENTILE` lies outside [0, 1].
    """
    mongo_uri = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    mongo_db = os.getenv("MONGO_DB", "ledger")
    mongo_tls = os.getenv("MONGO_TLS", "false").strip().lower() in ("1", "true", "yes")
    transactions_collection = os.getenv("TRANSACTIONS_COLLECTION", "transactions")
    margin_floor = _decimal_env("MARGIN_FLOOR", "0.15")
    margin_percentile = _decimal_env("MARGIN_PERCENTILE", "0.25")

    if not Decimal(0) <= margin_percentile <= Decimal(1):
        raise RuntimeError(
            "MARGIN_PERCENTILE must lie between 0 and 1 "
            f"(got {margin_percentile})."
        )

    return Settings(
        mongo_uri=mongo_uri,
        mongo_db=mongo_db,
        mongo_tls=mongo_tls,
        transactions_collection=transactions_collection,
        margin_floor=margin_floor,
        margin_percentile=margin_percentile,
    )
