"""Read-only record stores.

A record store holds an immutable snapshot of transaction records and hands
out a fresh single-pass iterator on each `scan`. Two backends exist: an
in-memory tuple and a MongoDB collection.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

from pydantic import ValidationError

from ledger_analytics.aggregate.engine import Predicate
from ledger_analytics.db import from_bson_doc
from ledger_analytics.errors import InvalidRecordError
from ledger_analytics.models import TransactionRecord

log = logging.getLogger(__name__)


class InMemoryRecordStore:
    """Snapshot of records held in memory."""

    def __init__(self, records: Iterable[TransactionRecord]) -> None:
        self._records = tuple(records)

    def __len__(self) -> int:
        return len(self._records)

    def scan(self, predicate: Predicate | None = None) -> Iterator[TransactionRecord]:
        """Yield records, optionally filtered by `predicate`."""
        for rec in self._records:
            if predicate is None or predicate(rec):
                yield rec


class MongoRecordStore:
    """Transaction snapshot stored in a MongoDB collection.

    Documents are read with a batched cursor and validated into
    `TransactionRecord` one at a time.
    """

    def __init__(self, collection: Any, batch_size: int = 50_000) -> None:
        self.collection = collection
        self.batch_size = batch_size

    def count(self) -> int:
        return int(self.collection.count_documents({}))

    def scan(self, predicate: Predicate | None = None) -> Iterator[TransactionRecord]:
        """Yield validated records from the collection.

        Raises:
            InvalidRecordError: if a stored document fails validation.
        """
        cursor = self.collection.find({}, {"_id": False}).batch_size(self.batch_size)
        for pos, doc in enumerate(cursor, start=1):
            try:
                rec = TransactionRecord.model_validate(from_bson_doc(doc))
            except ValidationError as exc:
                raise InvalidRecordError(str(exc), row=pos) from exc
            if predicate is None or predicate(rec):
                yield rec
