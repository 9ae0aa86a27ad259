"""EOQ optimizer — cost-minimising order quantities.

Wilson formula: EOQ = sqrt(2 * D * S / H), with D the annual demand, S the
cost of placing one order and H the annual holding cost per unit. Invalid
inputs raise InvalidInput so the caller can fall back to the rule's
reorder_quantity instead of ordering a nonsense amount.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from restock_engine.errors import InvalidInput


DAYS_PER_YEAR = 365


@dataclass
class EOQResult:
    """Economic Order Quantity calculation result."""
    eoq: float  # unrounded Wilson quantity
    quantity: int  # orderable quantity (pack-rounded)
    annual_orders: float
    order_interval_days: float
    total_ordering_cost: float
    total_holding_cost: float
    total_cost: float


@dataclass
class DiscountTier:
    """Unit price that applies from min_quantity upwards."""
    min_quantity: int
    unit_cost: float


@dataclass
class DiscountOption:
    """Cheapest order quantity once price breaks are considered."""
    quantity: int
    unit_cost: float
    total_annual_cost: float


def round_to_pack(quantity: float, pack_size: int | None) -> int:
    """Ceil a quantity to the next pack multiple (or to a whole unit)."""
    if quantity <= 0:
        return 0
    whole = math.ceil(round(quantity, 6))
    if not pack_size or pack_size <= 1:
        return whole
    return math.ceil(whole / pack_size) * pack_size


def estimate_holding_cost(unit_cost: float, holding_cost_rate: float = 0.25) -> float:
    """Annual holding cost per unit, as a fraction of the unit cost."""
    return unit_cost * holding_cost_rate


def annualize_demand(mean_daily_demand: float) -> float:
    return mean_daily_demand * DAYS_PER_YEAR


def _validate(annual_demand: float, ordering_cost: float, holding_cost: float) -> None:
    if holding_cost <= 0:
        raise InvalidInput("holding_cost", "must be greater than 0")
    if annual_demand <= 0:
        raise InvalidInput("annual_demand", "must be greater than 0")
    if ordering_cost <= 0:
        raise InvalidInput("ordering_cost", "must be greater than 0")


def compute_eoq(
    annual_demand: float,
    ordering_cost: float,
    holding_cost: float,
    pack_size: int | None = None,
) -> EOQResult:
    """Compute Economic Order Quantity.

    Args:
        annual_demand: Annual demand in units (D).
        ordering_cost: Cost per order placed (S).
        holding_cost: Annual holding cost per unit (H).
        pack_size: Supplier pack multiple; when set the quantity is ceiled to it.

    Returns:
        EOQResult. quantity is the nearest whole unit, or the pack-ceiled value.

    Raises:
        InvalidInput: any input is zero or negative.
    """
    _validate(annual_demand, ordering_cost, holding_cost)

    eoq = math.sqrt(2 * annual_demand * ordering_cost / holding_cost)
    if pack_size and pack_size > 1:
        quantity = round_to_pack(eoq, pack_size)
    else:
        quantity = max(1, int(round(eoq)))

    annual_orders = annual_demand / eoq
    total_ordering_cost = annual_orders * ordering_cost
    total_holding_cost = (eoq / 2) * holding_cost

    return EOQResult(
        eoq=round(eoq, 4),
        quantity=quantity,
        annual_orders=round(annual_orders, 4),
        order_interval_days=round(DAYS_PER_YEAR / annual_orders, 2),
        total_ordering_cost=round(total_ordering_cost, 4),
        total_holding_cost=round(total_holding_cost, 4),
        total_cost=round(total_ordering_cost + total_holding_cost, 4),
    )


def _annual_cost(
    quantity: float, annual_demand: float, ordering_cost: float, holding_cost: float, unit_cost: float,
) -> float:
    return annual_demand * unit_cost + (annual_demand / quantity) * ordering_cost + (quantity / 2) * holding_cost


def compute_eoq_with_discounts(
    annual_demand: float,
    ordering_cost: float,
    holding_cost: float,
    unit_cost: float,
    tiers: list[DiscountTier],
    pack_size: int | None = None,
) -> DiscountOption:
    """Pick the cheapest quantity among the base EOQ and each price break.

    Each tier is evaluated at max(tier.min_quantity, EOQ); the option with
    the lowest total annual cost (purchase + ordering + holding) wins.
    """
    base = compute_eoq(annual_demand, ordering_cost, holding_cost, pack_size)
    best = DiscountOption(
        quantity=base.quantity,
        unit_cost=unit_cost,
        total_annual_cost=_annual_cost(base.quantity, annual_demand, ordering_cost, holding_cost, unit_cost),
    )

    for tier in sorted(tiers, key=lambda t: t.min_quantity):
        qty = round_to_pack(max(tier.min_quantity, base.quantity), pack_size)
        cost = _annual_cost(qty, annual_demand, ordering_cost, holding_cost, tier.unit_cost)
        if cost < best.total_annual_cost:
            best = DiscountOption(quantity=qty, unit_cost=tier.unit_cost, total_annual_cost=cost)

    best.total_annual_cost = round(best.total_annual_cost, 4)
    return best
