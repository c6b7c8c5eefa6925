"""Pydantic models for transaction records.

`TransactionRecord` is the immutable input unit of every aggregation. Money
fields are `Decimal` so sums keep currency fidelity.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Field order of the ledger; also the set of columns ingestion expects.
RECORD_FIELDS = (
    "order_date",
    "product_name",
    "category",
    "region",
    "quantity",
    "sales",
    "profit",
)


class TransactionRecord(BaseModel):
    """Schema for a single sale event.

    Attributes:
        order_date: Calendar date of the sale.
        product_name: Product identifier.
        category: Product category (small fixed set).
        region: Sales region (small fixed set).
        quantity: Units sold, strictly positive.
        sales: Revenue for the transaction, non-negative.
        profit: Profit for the transaction; may be negative. Given directly,
            not derived from sales.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)
    order_date: date
    product_name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    region: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    sales: Decimal = Field(..., ge=0)
    profit: Decimal

    @field_validator("product_name", "category", "region", mode="before")
    @classmethod
    def _strip_text(cls, v: object) -> object:
        if isinstance(v, str):
            return " ".join(v.split())
        return v
