"""MongoDB helpers and BSON conversion utilities.

Centralizes creation of Mongo clients and the conversions between Python
values used by the engine (`Decimal`, `date`) and BSON-safe values.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

import certifi
from bson.decimal128 import Decimal128
from pymongo import MongoClient
from pymongo.database import Database


def get_client(uri: str, tls: bool = False) -> MongoClient:
    """Return a configured PyMongo MongoClient for the provided URI.

    Args:
        uri: MongoDB connection URI.
        tls: Connect over TLS using the certifi CA bundle.

    Returns:
        Configured MongoClient instance.
    """
    options: dict[str, Any] = {
        "serverSelectionTimeoutMS": 30000,
        "socketTimeoutMS": 30000,
        "connectTimeoutMS": 30000,
    }
    if tls:
        options.update(tls=True, tlsCAFile=certifi.where())
    return MongoClient(uri, **options)


def get_db(
    client: MongoClient[dict[str, Any]],
    db_name: str,
) -> Database[dict[str, Any]]:
    """Return the named Database instance from a MongoClient.

    Args:
        client: PyMongo MongoClient.
        db_name: Database name.

    Returns:
        A Database object.
    """
    return client[db_name]


def to_bson_doc(doc: dict[str, Any]) -> dict[str, Any]:
    """Convert non-BSON-safe types to Mongo-safe types.

    `Decimal` becomes `Decimal128` and a plain `date` becomes a midnight
    `datetime`. Returns a new dict.
    """
    out: dict[str, Any] = {}
    for k, v in doc.items():
        if isinstance(v, Decimal):
            v = Decimal128(v)
        elif isinstance(v, date) and not isinstance(v, datetime):
            v = datetime.combine(v, datetime.min.time())
        out[k] = v
    return out


def from_bson_doc(doc: dict[str, Any], date_fields: tuple[str, ...] = ("order_date",)) -> dict[str, Any]:
    """Inverse of `to_bson_doc` for the fields the engine cares about."""
    out: dict[str, Any] = {}
    for k, v in doc.items():
        if isinstance(v, Decimal128):
            v = v.to_decimal()
        elif k in date_fields and isinstance(v, datetime):
            v = v.date()
        out[k] = v
    return out
