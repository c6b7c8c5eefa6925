"""Utilities for loading report sections into MongoDB.

Sections are small DataFrames. Each one is upserted into its own
`report_<section>` collection, keyed by the section's grouping columns.
"""

from __future__ import annotations

from typing import Any, Mapping
import logging

import pandas as pd
from pymongo import UpdateOne

from ledger_analytics.db import to_bson_doc

log = logging.getLogger(__name__)

COLLECTION_PREFIX = "report_"

# Upsert key per section; the overview is a single document.
SECTION_KEYS: dict[str, list[str]] = {
    "overview": [],
    "yearly_trends": ["year"],
    "monthly_trends": ["month"],
    "monthly_extremes": ["measure"],
    "low_margin_months": ["month"],
    "category_breakdown": ["category"],
    "product_breakdown": ["product_name"],
    "margin_light_products": ["product_name"],
    "unprofitable_products": ["product_name"],
    "region_breakdown": ["region"],
    "region_category_margins": ["region", "category"],
    "quantity_margin": ["quantity"],
}


def load_section(
    frame: pd.DataFrame,
    collection: Any,
    key_fields: list[str],
    replace: bool = True,
) -> int:
    """Upsert one report section into a MongoDB collection.

    Strategy:
    - Optionally clear the collection (a section is recomputed whole)
    - Upsert row-by-row with `key_fields` as selector

    Args:
        frame: Section DataFrame.
        collection: Target PyMongo collection.
        key_fields: Columns used as the upsert key.
        replace: Remove rows left over from a previous run first.

    Returns:
        Number of upsert operations written.
    """
    if replace:
        collection.delete_many({})

    if frame.empty:
        log.warning("No rows to load for %s", collection.name)
        return 0

    ops = []
    for row in frame.to_dict("records"):
        doc = to_bson_doc(row)
        query = {k: doc[k] for k in key_fields}
        ops.append(UpdateOne(query, {"$set": doc}, upsert=True))

    collection.bulk_write(ops, ordered=False)
    log.info("Report load complete for %s: %d rows", collection.name, len(ops))
    return len(ops)


def load_report(report: Mapping[str, pd.DataFrame], db: Any) -> dict[str, int]:
    """Upsert every section of a report into `report_<section>` collections.

    Returns:
        Mapping of section name to rows written.
    """
    written: dict[str, int] = {}
    for name, frame in report.items():
        key_fields = SECTION_KEYS.get(name, [])
        written[name] = load_section(frame, db[f"{COLLECTION_PREFIX}{name}"], key_fields)
    return written
