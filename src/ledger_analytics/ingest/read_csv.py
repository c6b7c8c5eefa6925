"""CSV reading and record validation for the transaction ledger.

`read_transactions_csv` normalizes the source headers and text columns with
pandas; `to_records` validates every row through the Pydantic model and fails
on the first bad row.
"""
from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd
from pydantic import ValidationError

from ledger_analytics.errors import InvalidRecordError
from ledger_analytics.models import RECORD_FIELDS, TransactionRecord

log = logging.getLogger(__name__)

# Source headers → record fields. Keys are compared after lowercasing and
# collapsing spaces/dashes to underscores.
COLUMN_ALIASES = {
    "order_date": "order_date",
    "date": "order_date",
    "product_name": "product_name",
    "product": "product_name",
    "category": "category",
    "region": "region",
    "quantity": "quantity",
    "sales": "sales",
    "profit": "profit",
}

TEXT_COLUMNS = ("product_name", "category", "region")


def _normalize_header(name: str) -> str:
    return "_".join(str(name).strip().lower().replace("-", " ").split())


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename source columns to record field names and trim text values.

    Raises:
        InvalidRecordError: if a required column is missing.
    """
    df = df.copy()
    renames = {}
    for col in df.columns:
        target = COLUMN_ALIASES.get(_normalize_header(col))
        if target is not None and target not in renames.values():
            renames[col] = target
    df = df.rename(columns=renames)

    missing = [c for c in RECORD_FIELDS if c not in df.columns]
    if missing:
        raise InvalidRecordError(f"missing required column(s): {missing}")

    df = df[list(RECORD_FIELDS)].copy()
    for col in TEXT_COLUMNS:
        df[col] = (
            df[col]
            .astype(str)
            .str.strip()
            .str.replace(r"\s+", " ", regex=True)
        )
    df["order_date"] = pd.to_datetime(df["order_date"], format="mixed", errors="coerce").dt.date
    return df


def read_transactions_csv(path: str | Path) -> pd.DataFrame:
    """Read a transaction CSV into a normalized pandas DataFrame.

    Money columns are read as text so they reach `Decimal` without passing
    through binary floats.

    Args:
        path: CSV file path.

    Returns:
        DataFrame with exactly the `RECORD_FIELDS` columns.
    """
    raw = pd.read_csv(path, dtype=str, keep_default_na=False)
    log.info("Read %d rows from %s", len(raw), path)
    return normalize_columns(raw)


def to_records(df: pd.DataFrame) -> list[TransactionRecord]:
    """Validate DataFrame rows into `TransactionRecord` objects.

    Raises:
        InvalidRecordError: on the first row that fails validation; the row
            number is 1-based, counting data rows only.
    """
    records: list[TransactionRecord] = []
    for idx, row in enumerate(df.to_dict(orient="records"), start=1):
        if pd.isna(row.get("order_date")):
            raise InvalidRecordError(f"unparseable order_date in {row}", row=idx)
        try:
            records.append(TransactionRecord.model_validate(row))
        except ValidationError as exc:
            raise InvalidRecordError(str(exc), row=idx) from exc
    log.info("Validated %d transaction records", len(records))
    return records
