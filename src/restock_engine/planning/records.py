"""Plain records shared by the planning functions.

The store layer converts ORM rows into these so the planning code stays pure
and can be exercised without a database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class DemandHistoryPoint:
    """Units sold for one product in one period (a day)."""
    product_id: str
    date: date
    units_sold: float


@dataclass(frozen=True)
class StockSnapshot:
    """Authoritative on-hand stock as read from the stock ledger."""
    product_id: str
    current_stock: int
    as_of: datetime | None = None


@dataclass
class RuleSpec:
    """A reorder rule as the planning code sees it."""
    product_id: str
    supplier_id: str
    reorder_point: int
    reorder_quantity: int
    min_stock: int = 0
    max_stock: int | None = None
    lead_time_days: int = 0
    is_active: bool = True
    auto_generate: bool = False
    id: str | None = None


@dataclass(frozen=True)
class SupplierTerms:
    """Supplier directory data relevant to ordering."""
    supplier_id: str
    lead_time_days: int | None = None
    defect_rate: float | None = None
    min_order_value: float | None = None
    min_order_quantity: int | None = None


@dataclass
class ReceiptRecord:
    """Timestamps of one received purchase order, used for supplier scoring."""
    order_id: str
    sent_at: datetime | None
    received_at: datetime | None
    expected_delivery_date: date | None
