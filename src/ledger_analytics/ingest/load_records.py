"""Load validated transaction records into MongoDB in batches."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Sequence

from ledger_analytics.db import to_bson_doc
from ledger_analytics.models import TransactionRecord

log = logging.getLogger(__name__)

BATCH_SIZE = 1000
STAGING_SUFFIX = "_staging"


def _chunks(data: Sequence[dict[str, Any]], size: int) -> Iterable[Sequence[dict[str, Any]]]:
    """Yield slices of `data` of at most `size` documents."""
    for i in range(0, len(data), size):
        yield data[i : i + size]


def load_records_to_mongo(
    records: Iterable[TransactionRecord],
    collection: Any,
    batch_size: int = BATCH_SIZE,
    replace: bool = False,
) -> int:
    """Insert records into the transactions collection.

    Strategy for `replace=True`:
    - Load into a fresh `<name>_staging` collection
    - Rename it onto the target with `dropTarget=True`
    A failure while inserting leaves the current snapshot untouched.

    Args:
        records: Validated transaction records.
        collection: Target PyMongo collection.
        batch_size: Documents per `insert_many` call.
        replace: Swap the collection's contents for exactly this snapshot.

    Returns:
        Number of documents inserted.
    """
    docs: List[dict[str, Any]] = [to_bson_doc(r.model_dump(mode="python")) for r in records]

    target = collection
    if replace:
        if not docs:
            removed = collection.delete_many({}).deleted_count
            log.info("Empty snapshot: cleared %d transaction documents", removed)
            return 0
        target = collection.database[f"{collection.name}{STAGING_SUFFIX}"]
        target.drop()

    inserted = 0
    for batch in _chunks(docs, batch_size):
        result = target.insert_many(list(batch), ordered=False)
        inserted += len(result.inserted_ids)

    if replace:
        target.rename(collection.name, dropTarget=True)
        log.info("Replaced transaction snapshot via %s", target.name)

    log.info("Loaded %d transaction documents", inserted)
    return inserted
