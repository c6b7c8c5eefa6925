from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pandas as pd
import pytest
from bson.decimal128 import Decimal128

from ledger_analytics.errors import InvalidRecordError
from ledger_analytics.ingest.load_records import load_records_to_mongo
from ledger_analytics.ingest.read_csv import normalize_columns, read_transactions_csv, to_records

CSV = """Order Date,Product Name,Category,Region,Quantity,Sales,Profit
2023-01-05,  Laptop ,Electronics,North,2,1000.10,200.05
2023-02-11,Smart   Watch,Accessories,West,1,250,-12.5
"""


def test_read_csv_normalizes_headers_and_text(tmp_path) -> None:
    path = tmp_path / "sales.csv"
    path.write_text(CSV, encoding="utf-8")
    df = read_transactions_csv(path)
    assert list(df.columns) == [
        "order_date", "product_name", "category", "region", "quantity", "sales", "profit",
    ]
    assert df.loc[0, "product_name"] == "Laptop"
    assert df.loc[1, "product_name"] == "Smart Watch"
    assert df.loc[0, "order_date"] == date(2023, 1, 5)


def test_to_records_keeps_decimal_fidelity(tmp_path) -> None:
    path = tmp_path / "sales.csv"
    path.write_text(CSV, encoding="utf-8")
    records = to_records(read_transactions_csv(path))
    assert len(records) == 2
    assert records[0].sales == Decimal("1000.10")
    assert records[1].profit == Decimal("-12.5")


def test_missing_column_raises() -> None:
    df = pd.DataFrame([{"Order Date": "2024-01-01", "Sales": "1"}])
    with pytest.raises(InvalidRecordError):
        normalize_columns(df)


def test_bad_row_raises_with_row_number() -> None:
    df = normalize_columns(pd.DataFrame([
        {"Order Date": "2024-01-01", "Product Name": "A", "Category": "X",
         "Region": "N", "Quantity": "1", "Sales": "10", "Profit": "1"},
        {"Order Date": "2024-01-02", "Product Name": "B", "Category": "X",
         "Region": "N", "Quantity": "0", "Sales": "10", "Profit": "1"},
    ]))
    with pytest.raises(InvalidRecordError) as exc:
        to_records(df)
    assert exc.value.row == 2


def test_unparseable_date_raises() -> None:
    df = normalize_columns(pd.DataFrame([
        {"Order Date": "someday", "Product Name": "A", "Category": "X",
         "Region": "N", "Quantity": "1", "Sales": "10", "Profit": "1"},
    ]))
    with pytest.raises(InvalidRecordError):
        to_records(df)


def test_load_records_converts_bson_types(ledger, fake_db) -> None:
    coll = fake_db["transactions"]
    n = load_records_to_mongo(ledger, coll, batch_size=3)
    assert n == 8
    doc = coll.docs[0]
    assert doc["order_date"] == datetime(2023, 1, 5)
    assert isinstance(doc["sales"], Decimal128)
    assert doc["sales"].to_decimal() == Decimal("1000.00")


def test_load_records_replace_swaps_snapshot(ledger, fake_db) -> None:
    load_records_to_mongo(ledger, fake_db["transactions"])
    load_records_to_mongo(ledger[:2], fake_db["transactions"], replace=True)
    assert len(fake_db["transactions"].docs) == 2
    assert "transactions_staging" not in fake_db


def test_failed_replace_keeps_previous_snapshot(ledger, fake_db) -> None:
    load_records_to_mongo(ledger, fake_db["transactions"])
    fake_db["transactions_staging"].fail_after = 3
    with pytest.raises(RuntimeError):
        load_records_to_mongo(ledger[:5], fake_db["transactions"], batch_size=2, replace=True)
    assert len(fake_db["transactions"].docs) == 8


def test_replace_with_no_records_empties_collection(ledger, fake_db) -> None:
    load_records_to_mongo(ledger, fake_db["transactions"])
    assert load_records_to_mongo([], fake_db["transactions"], replace=True) == 0
    assert fake_db["transactions"].docs == []


def test_mixed_date_formats_parse() -> None:
    df = normalize_columns(pd.DataFrame([
        {"Order Date": "01/13/2023", "Product Name": "A", "Category": "X",
         "Region": "N", "Quantity": "1", "Sales": "10", "Profit": "1"},
        {"Order Date": "2023-01-14", "Product Name": "B", "Category": "X",
         "Region": "N", "Quantity": "1", "Sales": "10", "Profit": "1"},
    ]))
    records = to_records(df)
    assert [r.order_date for r in records] == [date(2023, 1, 13), date(2023, 1, 14)]
