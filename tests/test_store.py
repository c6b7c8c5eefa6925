from __future__ import annotations

from datetime import datetime

import pytest
from bson.decimal128 import Decimal128

from ledger_analytics.aggregate.engine import aggregate
from ledger_analytics.errors import InvalidRecordError
from ledger_analytics.ingest.load_records import load_records_to_mongo
from ledger_analytics.store import InMemoryRecordStore, MongoRecordStore


def test_in_memory_store_rescans(ledger) -> None:
    store = InMemoryRecordStore(iter(ledger))
    assert len(store) == 8
    assert len(list(store.scan())) == 8
    assert len(list(store.scan(lambda r: r.region == "South"))) == 3


def test_mongo_store_round_trips_records(ledger, fake_db) -> None:
    coll = fake_db["transactions"]
    load_records_to_mongo(ledger, coll)
    store = MongoRecordStore(coll, batch_size=2)
    assert store.count() == 8
    assert list(store.scan()) == ledger
    assert aggregate(store.scan()) == aggregate(ledger)


def test_mongo_store_rejects_invalid_document(fake_db) -> None:
    coll = fake_db["transactions"]
    coll.docs.append({
        "order_date": datetime(2024, 1, 1),
        "product_name": "A",
        "category": "X",
        "region": "N",
        "quantity": -1,
        "sales": Decimal128("10.00"),
        "profit": Decimal128("1.00"),
    })
    with pytest.raises(InvalidRecordError):
        list(MongoRecordStore(coll).scan())
