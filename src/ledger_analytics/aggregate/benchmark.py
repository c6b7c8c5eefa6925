"""Population benchmarks over per-entity metrics.

A benchmark is one scalar (mean or continuous percentile) computed across
entities, one value per entity. Undefined values (None, e.g. the margin of a
zero-sales group) are dropped before the statistic is taken.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping

from ledger_analytics.aggregate.engine import AggregateMetrics, GroupKey
from ledger_analytics.errors import EmptyInputError

log = logging.getLogger(__name__)

STATISTICS = ("mean", "percentile")


@dataclass(frozen=True)
class Statistic:
    """A statistic request.

    Attributes:
        kind: "mean" or "percentile".
        p: Fraction in [0, 1]; only meaningful for percentiles.
    """
    kind: str
    p: Decimal | None = None

    def __post_init__(self) -> None:
        if self.kind not in STATISTICS:
            raise ValueError(f"statistic must be one of {STATISTICS}, got {self.kind!r}")
        if self.kind == "percentile":
            if self.p is None or not self.p.is_finite() or not 0 <= self.p <= 1:
                raise ValueError(f"percentile fraction must lie in [0, 1], got {self.p}")


MEAN = Statistic("mean")


def percentile(p: Decimal | float | str) -> Statistic:
    """Return a continuous-percentile request for fraction `p`."""
    return Statistic("percentile", Decimal(str(p)))


def _defined(values: Iterable[Decimal | int | None]) -> list[Decimal]:
    out = [Decimal(str(v)) if isinstance(v, float) else Decimal(v) for v in values if v is not None]
    if not out:
        raise EmptyInputError("cannot compute a statistic over zero eligible values")
    return out


def mean(values: Iterable[Decimal | int | None]) -> Decimal:
    """Unweighted arithmetic mean of the defined values.

    Raises:
        EmptyInputError: if no defined value remains.
    """
    vals = _defined(values)
    return sum(vals, Decimal(0)) / len(vals)


def continuous_percentile(values: Iterable[Decimal | int | None], p: Decimal | float | str) -> Decimal:
    """Continuous (linear interpolation) percentile of the defined values.

    For sorted values v[0..n-1] the rank is r = p*(n-1); the result
    interpolates between v[floor(r)] and v[ceil(r)] by the fractional part
    of r. Matches SQL `percentile_cont`.

    Raises:
        EmptyInputError: if no defined value remains.
        ValueError: if `p` is outside [0, 1].
    """
    p = Decimal(str(p))
    if not p.is_finite() or not 0 <= p <= 1:
        raise ValueError(f"percentile fraction must lie in [0, 1], got {p}")

    vals = sorted(_defined(values))
    rank = p * (len(vals) - 1)
    lo = math.floor(rank)
    hi = math.ceil(rank)
    frac = rank - lo
    return vals[lo] + (vals[hi] - vals[lo]) * frac


def compute_statistic(values: Iterable[Decimal | int | None], statistic: Statistic) -> Decimal:
    """Dispatch a `Statistic` request over raw values."""
    if statistic.kind == "mean":
        return mean(values)
    return continuous_percentile(values, statistic.p)


def benchmark(
    groups: Mapping[GroupKey, AggregateMetrics],
    metric: str,
    statistic: Statistic,
) -> Decimal:
    """Compute a population benchmark of one metric across aggregated entities.

    Args:
        groups: Aggregation output, one entry per entity.
        metric: Attribute of `AggregateMetrics` (e.g. "total_units",
            "profit_margin").
        statistic: `MEAN` or `percentile(p)`.

    Returns:
        The scalar benchmark.

    Raises:
        EmptyInputError: if no entity has a defined value for `metric`.
        ValueError: if `metric` is not a field of `AggregateMetrics`.
    """
    if metric not in AggregateMetrics.__dataclass_fields__:
        raise ValueError(f"unknown metric {metric!r}")

    values = [getattr(m, metric) for m in groups.values()]
    result = compute_statistic(values, statistic)
    log.debug(
        "benchmark %s(%s) of %s over %d entities = %s",
        statistic.kind, statistic.p, metric, len(values), result,
    )
    return result
