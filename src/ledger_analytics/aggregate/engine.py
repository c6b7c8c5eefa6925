"""Grouped aggregation over transaction records.

One generic routine, `aggregate`, replaces per-dimension query variants: the
caller passes a key extractor (built from dimension names with
`dimension_key`, or any callable returning a tuple) and an optional time
granularity. The result maps each grouping key to its `AggregateMetrics`.

Expectations:
- Input: any iterable of `TransactionRecord`; it is consumed exactly once.
- Output: an unordered mapping. Presentation order belongs to the caller.
- Money sums are exact `Decimal` sums. Ratios keep full precision; rounding
  happens only in the report layer.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from operator import attrgetter
from typing import Callable, Hashable, Iterable

from ledger_analytics.models import TransactionRecord

log = logging.getLogger(__name__)

GroupKey = tuple[Hashable, ...]
KeyFn = Callable[[TransactionRecord], GroupKey]
Predicate = Callable[[TransactionRecord], bool]

DIMENSIONS = ("category", "product_name", "region", "quantity")
GRANULARITIES = ("month", "year")

ZERO = Decimal(0)


@dataclass(frozen=True)
class AggregateMetrics:
    """Summary statistics for one group.

    Attributes:
        transaction_count: Number of contributing records.
        total_units: Sum of `quantity`.
        total_sales: Sum of `sales`.
        total_profit: Sum of `profit`.
        profit_margin: `total_profit / total_sales`, or None when sales is 0.
        profit_share: Share of the partition's total profit, or None when
            that total is 0.
    """
    transaction_count: int
    total_units: int
    total_sales: Decimal
    total_profit: Decimal
    profit_margin: Decimal | None
    profit_share: Decimal | None = None


class _Accumulator:
    __slots__ = ("count", "units", "sales", "profit")

    def __init__(self) -> None:
        self.count = 0
        self.units = 0
        self.sales = ZERO
        self.profit = ZERO

    def add(self, rec: TransactionRecord) -> None:
        self.count += 1
        self.units += rec.quantity
        self.sales += rec.sales
        self.profit += rec.profit


def safe_ratio(numerator: Decimal, denominator: Decimal) -> Decimal | None:
    """Return `numerator / denominator`, or None when the denominator is zero."""
    if denominator == 0:
        return None
    return numerator / denominator


def truncate_date(d: date, granularity: str) -> date:
    """Truncate a date to the first day of its month or year.

    Args:
        d: Date to truncate.
        granularity: "month" or "year".

    Raises:
        ValueError: for any other granularity.
    """
    if granularity == "month":
        return d.replace(day=1)
    if granularity == "year":
        return d.replace(month=1, day=1)
    raise ValueError(f"granularity must be one of {GRANULARITIES}, got {granularity!r}")


def dimension_key(*names: str) -> KeyFn:
    """Build a key extractor returning the named record dimensions as a tuple.

    Args:
        names: One or more of `DIMENSIONS`, in key order.

    Raises:
        ValueError: if no name is given or a name is not a known dimension.
    """
    if not names:
        raise ValueError("dimension_key needs at least one dimension")
    unknown = [n for n in names if n not in DIMENSIONS]
    if unknown:
        raise ValueError(f"unknown dimension(s) {unknown}; expected {DIMENSIONS}")

    getter = attrgetter(*names)
    if len(names) == 1:
        return lambda rec: (getter(rec),)
    return lambda rec: tuple(getter(rec))


def combine_keys(*key_fns: KeyFn) -> KeyFn:
    """Concatenate the tuples produced by several key extractors."""

    def _key(rec: TransactionRecord) -> GroupKey:
        out: GroupKey = ()
        for fn in key_fns:
            out += fn(rec)
        return out

    return _key


def _grouping(key_fn: KeyFn | None, granularity: str | None) -> KeyFn:
    if granularity is not None and granularity not in GRANULARITIES:
        raise ValueError(f"granularity must be one of {GRANULARITIES}, got {granularity!r}")

    def _key(rec: TransactionRecord) -> GroupKey:
        key: GroupKey = ()
        if granularity is not None:
            key = (truncate_date(rec.order_date, granularity),)
        if key_fn is not None:
            key += key_fn(rec)
        return key

    return _key


def aggregate(
    records: Iterable[TransactionRecord],
    key_fn: KeyFn | None = None,
    predicate: Predicate | None = None,
    granularity: str | None = None,
) -> dict[GroupKey, AggregateMetrics]:
    """Group records and compute per-group totals, margin and profit share.

    The period start is the first key element when `granularity` is set,
    followed by the `key_fn` values. With neither, every selected record
    falls in the single group `()`.

    Args:
        records: Transaction records, iterated once.
        key_fn: Maps a record to its dimension tuple.
        predicate: Selects records; None keeps all.
        granularity: None, "month" or "year".

    Returns:
        Mapping of grouping key to `AggregateMetrics`, one entry per group with
        at least one selected record.
    """
    group_key = _grouping(key_fn, granularity)
    acc: dict[GroupKey, _Accumulator] = {}

    for rec in records:
        if predicate is not None and not predicate(rec):
            continue
        key = group_key(rec)
        slot = acc.get(key)
        if slot is None:
            slot = acc[key] = _Accumulator()
        slot.add(rec)

    # second pass: ratio-to-total over the whole result set
    partition_profit = sum((a.profit for a in acc.values()), ZERO)

    out = {
        key: AggregateMetrics(
            transaction_count=a.count,
            total_units=a.units,
            total_sales=a.sales,
            total_profit=a.profit,
            profit_margin=safe_ratio(a.profit, a.sales),
            profit_share=safe_ratio(a.profit, partition_profit),
        )
        for key, a in acc.items()
    }
    log.debug("aggregate produced %d groups (granularity=%s)", len(out), granularity)
    return out


def average_transaction_margin(
    records: Iterable[TransactionRecord],
    key_fn: KeyFn | None = None,
    predicate: Predicate | None = None,
) -> dict[GroupKey, Decimal | None]:
    """Return the mean of per-transaction `profit / sales` for each group.

    This is the average-of-ratios convention, not the ratio-of-sums used by
    `AggregateMetrics.profit_margin`. Zero-sales transactions have no ratio
    and are skipped; a group made only of them maps to None.
    """
    group_key = _grouping(key_fn, None)
    sums: dict[GroupKey, list] = {}

    for rec in records:
        if predicate is not None and not predicate(rec):
            continue
        slot = sums.setdefault(group_key(rec), [ZERO, 0])
        ratio = safe_ratio(rec.profit, rec.sales)
        if ratio is None:
            continue
        slot[0] += ratio
        slot[1] += 1

    return {
        key: (total / n if n else None)
        for key, (total, n) in sums.items()
    }
