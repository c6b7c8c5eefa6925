"""Report sections built from the aggregation core.

Each `section_*` function turns a materialized record snapshot into a small
pandas DataFrame: it calls the engine, imposes presentation order, and rounds
ratios at this boundary only. `build_report` runs all sections as independent
Dask tasks over the same snapshot.

Expectations:
- Input: a sequence of `TransactionRecord` (already materialized).
- Outputs: DataFrames whose columns are documented on each function.
  Ratios are rounded to 4 places, per-transaction money averages to 2 places;
  undefined ratios stay None.
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Sequence
from typing import cast, Any as TypingAny

import pandas as pd
from dask import compute, delayed  # type: ignore[attr-defined]

from ledger_analytics.aggregate.classify import margin_light_entities, threshold_scan
from ledger_analytics.aggregate.engine import (
    AggregateMetrics,
    GroupKey,
    aggregate,
    average_transaction_margin,
    dimension_key,
)
from ledger_analytics.config import Settings
from ledger_analytics.errors import EmptyInputError
from ledger_analytics.models import TransactionRecord

log = logging.getLogger(__name__)

RATIO_PLACES = Decimal("0.0001")
MONEY_PLACES = Decimal("0.01")

TREND_COLUMNS = ["transactions", "total_sales", "total_profit", "profit_margin"]
BREAKDOWN_COLUMNS = ["transactions", "total_units_sold", "total_sales", "total_profit", "profit_margin"]


def round_ratio(value: Decimal | None) -> Decimal | None:
    """Round a ratio to 4 places, half away from zero; None stays None."""
    if value is None:
        return None
    return value.quantize(RATIO_PLACES, rounding=ROUND_HALF_UP)


def round_money(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _row(key_names: Sequence[str], key: GroupKey, m: AggregateMetrics) -> dict[str, Any]:
    row: dict[str, Any] = dict(zip(key_names, key))
    row.update(
        transactions=m.transaction_count,
        total_units_sold=m.total_units,
        total_sales=m.total_sales,
        total_profit=m.total_profit,
        profit_margin=round_ratio(m.profit_margin),
        profit_share=round_ratio(m.profit_share),
    )
    return row


def metrics_frame(
    items: Iterable[tuple[GroupKey, AggregateMetrics]],
    key_names: Sequence[str],
    columns: Sequence[str],
) -> pd.DataFrame:
    """Build a DataFrame from ordered `(key, metrics)` pairs.

    Args:
        items: Pairs in presentation order.
        key_names: Column names for the key tuple elements.
        columns: Metric columns to keep, in order.
    """
    cols = list(key_names) + list(columns)
    rows = [_row(key_names, key, m) for key, m in items]
    return pd.DataFrame(rows, columns=cols)


def _by_profit_desc(groups: Mapping[GroupKey, AggregateMetrics]) -> list[tuple[GroupKey, AggregateMetrics]]:
    return sorted(groups.items(), key=lambda kv: (-kv[1].total_profit, kv[0]))


def _by_margin_asc(groups: Mapping[GroupKey, AggregateMetrics]) -> list[tuple[GroupKey, AggregateMetrics]]:
    # undefined margins last
    return sorted(
        groups.items(),
        key=lambda kv: (kv[1].profit_margin is None, kv[1].profit_margin or 0, kv[0]),
    )


# =========================================================
# OVERALL HEALTH
# =========================================================

def section_overview(records: Sequence[TransactionRecord]) -> pd.DataFrame:
    """Return overall totals as a single row.

    Columns: `transactions`, `total_sales`, `total_profit`, `profit_margin`,
    `avg_transaction_sales`, `avg_transaction_profit`.
    """
    cols = TREND_COLUMNS + ["avg_transaction_sales", "avg_transaction_profit"]
    groups = aggregate(records)
    if not groups:
        log.warning("No transactions; overview is empty")
        return pd.DataFrame(columns=cols)

    m = groups[()]
    row = _row((), (), m)
    row["avg_transaction_sales"] = round_money(m.total_sales / m.transaction_count)
    row["avg_transaction_profit"] = round_money(m.total_profit / m.transaction_count)
    return pd.DataFrame([row], columns=cols)


# =========================================================
# TIME TRENDS
# =========================================================

def section_yearly_trends(records: Sequence[TransactionRecord]) -> pd.DataFrame:
    """Return per-year totals in chronological order.

    Columns: `year` (Jan 1 date), `transactions`, `total_sales`,
    `total_profit`, `profit_margin`.
    """
    groups = aggregate(records, granularity="year")
    return metrics_frame(sorted(groups.items()), ["year"], TREND_COLUMNS)


def monthly_trends(records: Iterable[TransactionRecord]) -> dict[GroupKey, AggregateMetrics]:
    """Materialized monthly aggregation shared by the monthly sections."""
    return aggregate(records, granularity="month")


def section_monthly_trends(records: Sequence[TransactionRecord]) -> pd.DataFrame:
    """Return per-month totals in chronological order.

    Columns: `month` (first-of-month date) plus the trend metrics.
    """
    groups = monthly_trends(records)
    return metrics_frame(sorted(groups.items()), ["month"], TREND_COLUMNS)


def section_monthly_extremes(records: Sequence[TransactionRecord]) -> pd.DataFrame:
    """Return the highest/lowest sales months and best/worst margin months.

    Columns: `measure`, `month`, `value`. Ties resolve to the earliest month.
    Margin rows are omitted when no month has a defined margin.
    """
    cols = ["measure", "month", "value"]
    groups = sorted(monthly_trends(records).items())
    if not groups:
        log.warning("No transactions; monthly extremes are empty")
        return pd.DataFrame(columns=cols)

    rows = []
    hi = max(groups, key=lambda kv: kv[1].total_sales)
    lo = min(groups, key=lambda kv: kv[1].total_sales)
    rows.append({"measure": "highest_sales", "month": hi[0][0], "value": hi[1].total_sales})
    rows.append({"measure": "lowest_sales", "month": lo[0][0], "value": lo[1].total_sales})

    defined = [kv for kv in groups if kv[1].profit_margin is not None]
    if defined:
        best = max(defined, key=lambda kv: kv[1].profit_margin)
        worst = min(defined, key=lambda kv: kv[1].profit_margin)
        rows.append({"measure": "best_margin", "month": best[0][0], "value": round_ratio(best[1].profit_margin)})
        rows.append({"measure": "worst_margin", "month": worst[0][0], "value": round_ratio(worst[1].profit_margin)})
    return pd.DataFrame(rows, columns=cols)


def section_low_margin_months(
    records: Sequence[TransactionRecord],
    margin_floor: Decimal = Decimal("0.15"),
) -> pd.DataFrame:
    """Return months whose margin is strictly below `margin_floor`.

    Columns: `month`, `total_sales`, `total_profit`, `profit_margin`.
    """
    hits = threshold_scan(monthly_trends(records), "profit_margin", margin_floor, "<")
    return metrics_frame(hits, ["month"], ["total_sales", "total_profit", "profit_margin"])


# =========================================================
# CATEGORY / PRODUCT / REGION BREAKDOWNS
# =========================================================

def section_category_breakdown(records: Sequence[TransactionRecord]) -> pd.DataFrame:
    """Return per-category totals with profit share, highest profit first."""
    groups = aggregate(records, dimension_key("category"))
    return metrics_frame(_by_profit_desc(groups), ["category"], BREAKDOWN_COLUMNS + ["profit_share"])


def section_product_breakdown(records: Sequence[TransactionRecord]) -> pd.DataFrame:
    """Return per-product totals, highest profit first."""
    groups = aggregate(records, dimension_key("product_name"))
    return metrics_frame(_by_profit_desc(groups), ["product_name"], BREAKDOWN_COLUMNS)


def section_margin_light_products(
    records: Sequence[TransactionRecord],
    margin_percentile: Decimal = Decimal("0.25"),
) -> pd.DataFrame:
    """Return popular but margin-light products.

    A product qualifies when its units are at or above the mean units per
    product and its ratio-of-sums margin is at or below the given continuous
    percentile of product margins. Ordered by margin ascending, then units
    descending.

    Columns: `product_name`, `total_units_sold`, `total_sales`,
    `total_profit`, `profit_margin`.
    """
    columns = ["total_units_sold", "total_sales", "total_profit", "profit_margin"]
    groups = aggregate(records, dimension_key("product_name"))
    try:
        flagged = margin_light_entities(groups, margin_percentile)
    except EmptyInputError:
        log.warning("No product with a defined margin; skipping margin-light products")
        flagged = []
    return metrics_frame(flagged, ["product_name"], columns)


def section_unprofitable_products(records: Sequence[TransactionRecord]) -> pd.DataFrame:
    """Return products whose average per-transaction margin is <= 0.

    Uses the average-of-ratios convention (mean of profit/sales per
    transaction), not the ratio-of-sums margin.

    Columns: `product_name`, `avg_profit_margin`; most negative first.
    """
    averages = average_transaction_margin(records, dimension_key("product_name"))
    hits = threshold_scan(averages, None, 0, "<=")
    hits.sort(key=lambda kv: (kv[1], kv[0]))
    rows = [{"product_name": key[0], "avg_profit_margin": round_ratio(avg)} for key, avg in hits]
    return pd.DataFrame(rows, columns=["product_name", "avg_profit_margin"])


def section_region_breakdown(records: Sequence[TransactionRecord]) -> pd.DataFrame:
    """Return per-region totals, highest profit first."""
    groups = aggregate(records, dimension_key("region"))
    return metrics_frame(_by_profit_desc(groups), ["region"], BREAKDOWN_COLUMNS)


def section_region_category_margins(records: Sequence[TransactionRecord]) -> pd.DataFrame:
    """Return (region, category) totals ordered by margin ascending.

    Columns: `region`, `category`, `total_sales`, `total_profit`,
    `profit_margin`.
    """
    groups = aggregate(records, dimension_key("region", "category"))
    return metrics_frame(
        _by_margin_asc(groups),
        ["region", "category"],
        ["total_sales", "total_profit", "profit_margin"],
    )


def section_quantity_margin(records: Sequence[TransactionRecord]) -> pd.DataFrame:
    """Return the average per-transaction margin for each quantity value.

    Columns: `quantity`, `avg_profit_margin`; ascending by margin, undefined
    last.
    """
    averages = average_transaction_margin(records, dimension_key("quantity"))
    items = sorted(averages.items(), key=lambda kv: (kv[1] is None, kv[1] or 0, kv[0]))
    rows = [{"quantity": key[0], "avg_profit_margin": round_ratio(avg)} for key, avg in items]
    return pd.DataFrame(rows, columns=["quantity", "avg_profit_margin"])


# =========================================================
# ASSEMBLY
# =========================================================

def build_report(
    records: Iterable[TransactionRecord],
    settings: Settings | None = None,
) -> dict[str, pd.DataFrame]:
    """Compute every report section over one snapshot.

    The records are materialized once; each section then runs as its own
    Dask task on the threaded scheduler.

    Args:
        records: Transaction records (any iterable, consumed once).
        settings: Supplies `margin_floor` and `margin_percentile`; defaults
            apply when omitted.

    Returns:
        Mapping of section name to DataFrame, in a stable order.
    """
    margin_floor = settings.margin_floor if settings else Decimal("0.15")
    margin_percentile = settings.margin_percentile if settings else Decimal("0.25")

    snapshot = tuple(records)
    log.info("Building report over %d transactions", len(snapshot))
    snap = delayed(snapshot, traverse=False)

    tasks = {
        "overview": delayed(section_overview)(snap),
        "yearly_trends": delayed(section_yearly_trends)(snap),
        "monthly_trends": delayed(section_monthly_trends)(snap),
        "monthly_extremes": delayed(section_monthly_extremes)(snap),
        "low_margin_months": delayed(section_low_margin_months)(snap, margin_floor),
        "category_breakdown": delayed(section_category_breakdown)(snap),
        "product_breakdown": delayed(section_product_breakdown)(snap),
        "margin_light_products": delayed(section_margin_light_products)(snap, margin_percentile),
        "unprofitable_products": delayed(section_unprofitable_products)(snap),
        "region_breakdown": delayed(section_region_breakdown)(snap),
        "region_category_margins": delayed(section_region_category_margins)(snap),
        "quantity_margin": delayed(section_quantity_margin)(snap),
    }

    # `compute` is untyped in our environment; cast to Any before calling
    results = cast(TypingAny, compute)(*tasks.values(), scheduler="threads")
    report = dict(zip(tasks.keys(), results))

    for name, frame in report.items():
        log.info("Section %s: %d rows", name, len(frame))
    return report
