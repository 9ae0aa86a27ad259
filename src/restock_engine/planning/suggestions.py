"""Suggestion generator — compare live stock with active reorder rules.

A rule triggers when current_stock <= reorder_point. The suggested quantity
is max(rule.reorder_quantity, EOQ) ceiled to the product's pack size; EOQ
only takes part when its inputs (demand, unit cost, ordering and holding
cost) are all valid, otherwise the rule quantity stands alone.

Generation is side-effect free and deterministic: the same rules, stock and
demand produce the same suggestions in the same order, so overlapping runs
are harmless.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping

from restock_engine.errors import InvalidInput
from restock_engine.planning.eoq import annualize_demand, compute_eoq, estimate_holding_cost, round_to_pack
from restock_engine.planning.records import RuleSpec, StockSnapshot
from restock_engine.planning.stockout import project_days_until_stockout

logger = logging.getLogger(__name__)


@dataclass
class ReorderSuggestion:
    """One product that should be reordered from one supplier."""
    product_id: str
    supplier_id: str
    suggested_quantity: int
    trigger_stock: int
    rule_id: str | None
    generated_at: datetime
    reorder_point: int
    eoq_quantity: int | None
    unit_cost: float | None
    estimated_cost: float | None
    days_until_stockout: float | None
    priority: str  # "high", "medium", "low"


@dataclass
class UpcomingReorder:
    """An active rule whose stock is close to, but still above, its reorder point."""
    rule_id: str | None
    product_id: str
    supplier_id: str
    current_stock: int
    reorder_point: int
    headroom: int


_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def _priority(days: float | None) -> str:
    if days is None:
        return "low"
    if days <= 3:
        return "high"
    if days <= 7:
        return "medium"
    return "low"


def eoq_quantity_for(
    mean_daily_demand: float,
    unit_cost: float | None,
    ordering_cost: float,
    holding_cost_rate: float,
    pack_size: int | None = None,
) -> int | None:
    """EOQ for one product, or None when any input is missing or invalid."""
    if unit_cost is None:
        return None
    try:
        result = compute_eoq(
            annualize_demand(mean_daily_demand),
            ordering_cost,
            estimate_holding_cost(unit_cost, holding_cost_rate),
            pack_size,
        )
    except InvalidInput:
        return None
    return result.quantity


def suggested_quantity(rule: RuleSpec, eoq_qty: int | None, pack_size: int | None) -> int:
    """max(rule quantity, EOQ) rounded up to the pack size."""
    return round_to_pack(max(rule.reorder_quantity, eoq_qty or 0), pack_size)


def generate_suggestions(
    rules: list[RuleSpec],
    stock: Mapping[str, StockSnapshot],
    generated_at: datetime,
    *,
    mean_daily_demand: Mapping[str, float] | None = None,
    unit_costs: Mapping[tuple[str, str], float] | None = None,
    pack_sizes: Mapping[str, int | None] | None = None,
    ordering_cost: float = 50.0,
    holding_cost_rate: float = 0.25,
) -> list[ReorderSuggestion]:
    """Emit a suggestion for every active rule at or below its reorder point.

    Args:
        rules: Reorder rules (inactive ones are ignored).
        stock: Stock snapshots keyed by product_id.
        generated_at: Start of the evaluation window, stamped on every suggestion.
        mean_daily_demand: Mean units sold per day, keyed by product_id.
        unit_costs: Supplier catalog cost keyed by (supplier_id, product_id).
        pack_sizes: Pack multiple keyed by product_id.
        ordering_cost: Cost of placing one order (EOQ S).
        holding_cost_rate: Annual holding cost as a fraction of unit cost.

    Returns:
        Suggestions sorted by priority, days until stockout, product, supplier.
    """
    demand = mean_daily_demand or {}
    costs = unit_costs or {}
    packs = pack_sizes or {}

    suggestions: list[ReorderSuggestion] = []
    for rule in rules:
        if not rule.is_active:
            continue

        snapshot = stock.get(rule.product_id)
        if snapshot is None:
            logger.warning("No stock snapshot for product %s (rule %s), skipping", rule.product_id, rule.id)
            continue
        if snapshot.current_stock > rule.reorder_point:
            continue

        mean = demand.get(rule.product_id, 0.0)
        unit_cost = costs.get((rule.supplier_id, rule.product_id))
        pack = packs.get(rule.product_id)
        eoq_qty = eoq_quantity_for(mean, unit_cost, ordering_cost, holding_cost_rate, pack)
        qty = suggested_quantity(rule, eoq_qty, pack)
        days = project_days_until_stockout(snapshot.current_stock, mean)

        suggestions.append(ReorderSuggestion(
            product_id=rule.product_id,
            supplier_id=rule.supplier_id,
            suggested_quantity=qty,
            trigger_stock=snapshot.current_stock,
            rule_id=rule.id,
            generated_at=generated_at,
            reorder_point=rule.reorder_point,
            eoq_quantity=eoq_qty,
            unit_cost=unit_cost,
            estimated_cost=round(qty * unit_cost, 2) if unit_cost is not None else None,
            days_until_stockout=days,
            priority=_priority(days),
        ))

    suggestions.sort(key=lambda s: (
        _PRIORITY_ORDER[s.priority],
        s.days_until_stockout if s.days_until_stockout is not None else math.inf,
        s.product_id,
        s.supplier_id,
    ))
    return suggestions


def find_upcoming_reorders(
    rules: list[RuleSpec],
    stock: Mapping[str, StockSnapshot],
    margin: float = 0.2,
) -> list[UpcomingReorder]:
    """Active rules whose stock is above the reorder point by at most `margin`."""
    upcoming: list[UpcomingReorder] = []
    for rule in rules:
        if not rule.is_active:
            continue
        snapshot = stock.get(rule.product_id)
        if snapshot is None:
            continue
        threshold = rule.reorder_point * (1 + margin)
        if rule.reorder_point < snapshot.current_stock <= threshold:
            upcoming.append(UpcomingReorder(
                rule_id=rule.id,
                product_id=rule.product_id,
                supplier_id=rule.supplier_id,
                current_stock=snapshot.current_stock,
                reorder_point=rule.reorder_point,
                headroom=snapshot.current_stock - rule.reorder_point,
            ))
    upcoming.sort(key=lambda u: (u.headroom, u.product_id))
    return upcoming
