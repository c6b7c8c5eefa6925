from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from ledger_analytics.models import TransactionRecord

ROWS = [
    # order_date, product, category, region, qty, sales, profit
    (date(2023, 1, 5), "Laptop", "Electronics", "North", 2, "1000.00", "200.00"),
    (date(2023, 1, 20), "Mouse", "Accessories", "South", 5, "100.00", "30.00"),
    (date(2023, 2, 10), "Laptop", "Electronics", "West", 1, "500.00", "90.00"),
    (date(2023, 2, 11), "Printer", "Office", "North", 6, "300.00", "30.00"),
    (date(2024, 3, 1), "Mouse", "Accessories", "North", 4, "80.00", "20.00"),
    (date(2024, 3, 15), "Printer", "Office", "West", 2, "200.00", "-10.00"),
    (date(2024, 3, 20), "Cable", "Accessories", "South", 1, "0.00", "0.00"),
    (date(2024, 4, 2), "Adapter", "Accessories", "South", 10, "50.00", "-5.00"),
]


def make_record(
    order_date: date,
    product_name: str,
    category: str,
    region: str,
    quantity: int,
    sales: str,
    profit: str,
) -> TransactionRecord:
    return TransactionRecord(
        order_date=order_date,
        product_name=product_name,
        category=category,
        region=region,
        quantity=quantity,
        sales=Decimal(sales),
        profit=Decimal(profit),
    )


@pytest.fixture
def ledger() -> list[TransactionRecord]:
    """Eight-row ledger covering a zero-sales sale and negative profits."""
    return [make_record(*row) for row in ROWS]


@pytest.fixture
def record_factory():
    """Return the `make_record` builder for ad-hoc ledgers."""
    return make_record


class FakeCollection:
    """In-memory stand-in for the PyMongo collection calls the code makes."""

    def __init__(self, name: str = "fake", docs: list[dict] | None = None, database=None) -> None:
        self.name = name
        self.database = database
        self.fail_after: int | None = None
        self.docs: list[dict] = list(docs or [])
        self.bulk_ops: list = []

    class _Cursor:
        def __init__(self, docs: list[dict]) -> None:
            self._docs = docs
            self.batch = None

        def batch_size(self, n: int):
            self.batch = n
            return self

        def __iter__(self):
            return iter(self._docs)

    class _Result:
        def __init__(self, **kw) -> None:
            self.__dict__.update(kw)

    def find(self, query: dict, projection: dict | None = None):
        docs = [{k: v for k, v in d.items() if k != "_id"} for d in self.docs]
        return self._Cursor(docs)

    def count_documents(self, query: dict) -> int:
        return len(self.docs)

    def insert_many(self, docs: list[dict], ordered: bool = True):
        if self.fail_after is not None and len(self.docs) + len(docs) > self.fail_after:
            raise RuntimeError("insert failed")
        ids = []
        for d in docs:
            d = dict(d)
            d["_id"] = len(self.docs)
            self.docs.append(d)
            ids.append(d["_id"])
        return self._Result(inserted_ids=ids)

    def delete_many(self, query: dict):
        n = len(self.docs)
        self.docs.clear()
        return self._Result(deleted_count=n)

    def drop(self) -> None:
        self.docs.clear()
        if self.database is not None:
            self.database.pop(self.name, None)

    def rename(self, new_name: str, dropTarget: bool = False) -> None:
        if new_name in self.database and not dropTarget:
            raise RuntimeError("target namespace exists")
        self.database.pop(self.name, None)
        self.name = new_name
        self.database[new_name] = self

    def bulk_write(self, ops: list, ordered: bool = True):
        self.bulk_ops.extend(ops)
        return self._Result(upserted_count=len(ops), modified_count=0)


class FakeDB(dict):
    def __missing__(self, name: str) -> FakeCollection:
        coll = self[name] = FakeCollection(name, database=self)
        return coll


@pytest.fixture
def fake_db() -> FakeDB:
    return FakeDB()
