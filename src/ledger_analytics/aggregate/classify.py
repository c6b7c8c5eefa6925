"""Outlier classification and threshold scans over aggregated groups.

The classifier joins aggregation output with two benchmarks (volume and
margin) and returns the flagged entities in a deterministic triage order.
Threshold scans compare one metric against a fixed scalar with an explicit
comparison operator chosen by the caller.
"""
from __future__ import annotations

import logging
import operator
from decimal import Decimal
from typing import Callable, Mapping

from ledger_analytics.aggregate.benchmark import MEAN, benchmark, percentile
from ledger_analytics.aggregate.engine import AggregateMetrics, GroupKey

log = logging.getLogger(__name__)

Flagged = tuple[GroupKey, AggregateMetrics]

TAILS = ("low_margin", "high_margin")

COMPARISONS: dict[str, Callable[[Decimal, Decimal], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def _is_outlier(m: AggregateMetrics, volume: Decimal, margin: Decimal, tail: str) -> bool:
    if tail == "low_margin":
        return m.total_units >= volume and m.profit_margin <= margin
    return m.total_units <= volume and m.profit_margin >= margin


def _check_tail(tail: str) -> None:
    if tail not in TAILS:
        raise ValueError(f"tail must be one of {TAILS}, got {tail!r}")


def outlier_flags(
    groups: Mapping[GroupKey, AggregateMetrics],
    volume_benchmark: Decimal,
    margin_benchmark: Decimal,
    tail: str = "low_margin",
) -> dict[GroupKey, bool]:
    """Return the outlier flag of every entity with a defined margin.

    Entities whose margin is undefined do not appear in the result.
    """
    _check_tail(tail)
    return {
        key: _is_outlier(m, volume_benchmark, margin_benchmark, tail)
        for key, m in groups.items()
        if m.profit_margin is not None
    }


def classify_outliers(
    groups: Mapping[GroupKey, AggregateMetrics],
    volume_benchmark: Decimal,
    margin_benchmark: Decimal,
    tail: str = "low_margin",
) -> list[Flagged]:
    """Select entities on one volume/margin tail, most severe first.

    `low_margin`: units >= volume_benchmark and margin <= margin_benchmark,
    ordered by margin ascending then units descending.
    `high_margin`: units <= volume_benchmark and margin >= margin_benchmark,
    ordered by margin descending then units ascending.
    Remaining ties fall back to key order.

    Args:
        groups: Aggregation output keyed by entity.
        volume_benchmark: Units threshold.
        margin_benchmark: Margin threshold.
        tail: "low_margin" (default) or "high_margin".

    Returns:
        Ordered list of `(key, metrics)` pairs.
    """
    flags = outlier_flags(groups, volume_benchmark, margin_benchmark, tail)
    flagged = [(key, groups[key]) for key, hit in flags.items() if hit]

    flagged.sort(key=lambda kv: kv[0])
    if tail == "low_margin":
        flagged.sort(key=lambda kv: (kv[1].profit_margin, -kv[1].total_units))
    else:
        flagged.sort(key=lambda kv: (-kv[1].profit_margin, kv[1].total_units))

    log.debug("%d of %d entities flagged on %s tail", len(flagged), len(groups), tail)
    return flagged


def margin_light_entities(
    groups: Mapping[GroupKey, AggregateMetrics],
    margin_percentile: Decimal | float | str = Decimal("0.25"),
) -> list[Flagged]:
    """Flag popular but margin-light entities.

    Volume benchmark is the mean of `total_units`; margin benchmark is the
    continuous percentile `margin_percentile` of `profit_margin`. Both are
    taken across the entities with a defined margin; zero-sales entities
    are left out of the population as well as the result.

    Raises:
        EmptyInputError: if `groups` has no entity with a defined margin.
    """
    population = {k: m for k, m in groups.items() if m.profit_margin is not None}
    volume = benchmark(population, "total_units", MEAN)
    margin = benchmark(population, "profit_margin", percentile(margin_percentile))
    log.info("margin-light benchmarks: avg_units=%s margin_p=%s", volume, margin)
    return classify_outliers(groups, volume, margin, tail="low_margin")


def threshold_scan(
    groups: Mapping[GroupKey, AggregateMetrics] | Mapping[GroupKey, Decimal | None],
    metric: str | None,
    threshold: Decimal | float | str,
    comparison: str,
) -> list[tuple[GroupKey, object]]:
    """Return the groups whose metric compares true against `threshold`.

    Args:
        groups: Either aggregation output (then `metric` names an
            `AggregateMetrics` attribute) or a mapping of key to a scalar value
            (then `metric` is None).
        metric: Attribute to compare, or None for scalar mappings.
        threshold: Fixed scalar.
        comparison: One of "<", "<=", ">", ">=".

    Returns:
        `(key, entry)` pairs in key order. Groups with an undefined value are
        left out.
    """
    try:
        cmp = COMPARISONS[comparison]
    except KeyError:
        raise ValueError(f"comparison must be one of {list(COMPARISONS)}, got {comparison!r}") from None
    limit = Decimal(str(threshold))
    if not limit.is_finite():
        raise ValueError(f"threshold must be a finite number, got {limit}")

    hits = []
    for key, entry in groups.items():
        value = entry if metric is None else getattr(entry, metric)
        if value is None:
            continue
        if cmp(value, limit):
            hits.append((key, entry))

    hits.sort(key=lambda kv: kv[0])
    return hits
