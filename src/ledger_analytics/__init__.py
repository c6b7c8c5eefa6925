"""ledger_analytics package.

Contains modules for reading a fixed-schema e-commerce transaction ledger,
holding it in a read-only record store (in memory or MongoDB), aggregating it
along arbitrary dimensions and time buckets, benchmarking the aggregates, and
flagging margin outliers.

Architecture:
- CSV → MongoDB transactions snapshot → aggregation → benchmarks → report sections
- Pydantic models validate transaction records at ingestion
- Dask runs independent report sections in parallel
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
