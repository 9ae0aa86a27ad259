"""Stockout projector and inventory metrics.

Days of cover left at the current depletion rate, plus the period ratios
(turnover, days on hand, fill rate, stockout frequency). Zero denominators
return a fixed value instead of raising.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import Sequence

from restock_engine.errors import InvalidInput
from restock_engine.planning.records import DemandHistoryPoint


# Returned by project_days_until_stockout when there is no demand.
NO_STOCKOUT = None


@dataclass
class StockoutProjection:
    """Stockout outlook for one product."""
    product_id: str
    current_stock: int
    average_daily_demand: float | None
    days_until_stockout: float | None
    status: str  # "stockout", "critical", "warning", "ok", "no_demand", "insufficient_data"


def project_days_until_stockout(current_stock: float, average_daily_demand: float) -> float | None:
    """current_stock / average_daily_demand, never negative.

    Returns NO_STOCKOUT (None) when nothing is being sold, and 0 when the
    shelf is already empty.
    """
    if average_daily_demand <= 0:
        return NO_STOCKOUT
    if current_stock <= 0:
        return 0.0
    return round(current_stock / average_daily_demand, 2)


def classify_days(days: float | None, critical_days: float = 3, warning_days: float = 7) -> str:
    if days is None:
        return "no_demand"
    if days <= 0:
        return "stockout"
    if days <= critical_days:
        return "critical"
    if days <= warning_days:
        return "warning"
    return "ok"


def project_stockout(
    product_id: str,
    current_stock: int,
    history: Sequence[DemandHistoryPoint],
) -> StockoutProjection:
    """Project a stockout from demand history; degrades to insufficient_data."""
    if not history:
        return StockoutProjection(
            product_id=product_id,
            current_stock=current_stock,
            average_daily_demand=None,
            days_until_stockout=None,
            status="insufficient_data",
        )

    avg = statistics.fmean(p.units_sold for p in history)
    days = project_days_until_stockout(current_stock, avg)
    return StockoutProjection(
        product_id=product_id,
        current_stock=current_stock,
        average_daily_demand=round(avg, 4),
        days_until_stockout=days,
        status=classify_days(days),
    )


# ---------------------------------------------------------------------------
# Inventory metrics
# ---------------------------------------------------------------------------

def _non_negative(field: str, value: float) -> None:
    if value < 0:
        raise InvalidInput(field, "must be zero or positive")


def inventory_turnover(cost_of_goods_sold: float, average_inventory_value: float) -> float:
    """Times the inventory was sold through in the period; 0 with no inventory."""
    _non_negative("cost_of_goods_sold", cost_of_goods_sold)
    _non_negative("average_inventory_value", average_inventory_value)
    if average_inventory_value == 0:
        return 0.0
    return round(cost_of_goods_sold / average_inventory_value, 4)


def days_inventory_on_hand(average_inventory: float, average_daily_demand: float) -> float | None:
    """Days the average inventory lasts; NO_STOCKOUT when nothing is sold."""
    _non_negative("average_inventory", average_inventory)
    _non_negative("average_daily_demand", average_daily_demand)
    if average_daily_demand == 0:
        return NO_STOCKOUT
    return round(average_inventory / average_daily_demand, 2)


def fill_rate(demand_met: float, total_demand: float) -> float:
    """Share of demand served from stock; 1.0 when there was no demand."""
    _non_negative("demand_met", demand_met)
    _non_negative("total_demand", total_demand)
    if demand_met > total_demand:
        raise InvalidInput("demand_met", "must not exceed total_demand")
    if total_demand == 0:
        return 1.0
    return round(demand_met / total_demand, 4)


def stockout_frequency(stockout_days: int, total_days: int) -> float:
    """Share of days in the period spent out of stock; 0 for an empty period."""
    _non_negative("stockout_days", stockout_days)
    _non_negative("total_days", total_days)
    if stockout_days > total_days:
        raise InvalidInput("stockout_days", "must not exceed total_days")
    if total_days == 0:
        return 0.0
    return round(stockout_days / total_days, 4)
