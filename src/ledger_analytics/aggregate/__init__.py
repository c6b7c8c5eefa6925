"""Aggregation, benchmarking and outlier classification.

This package holds the analytical core: `engine` groups transaction records
into per-key metrics, `benchmark` derives population statistics from those
metrics, and `classify` flags entities against benchmarks or fixed thresholds.
"""

from ledger_analytics.aggregate.benchmark import (
    MEAN,
    Statistic,
    benchmark,
    compute_statistic,
    continuous_percentile,
    mean,
    percentile,
)
from ledger_analytics.aggregate.classify import (
    classify_outliers,
    margin_light_entities,
    outlier_flags,
    threshold_scan,
)
from ledger_analytics.aggregate.engine import (
    AggregateMetrics,
    aggregate,
    average_transaction_margin,
    combine_keys,
    dimension_key,
    truncate_date,
)

__all__ = [
    "MEAN",
    "AggregateMetrics",
    "Statistic",
    "aggregate",
    "average_transaction_margin",
    "benchmark",
    "classify_outliers",
    "combine_keys",
    "compute_statistic",
    "continuous_percentile",
    "dimension_key",
    "margin_light_entities",
    "mean",
    "outlier_flags",
    "percentile",
    "threshold_scan",
    "truncate_date",
]
