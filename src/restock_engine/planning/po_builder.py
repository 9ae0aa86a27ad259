"""Purchase order builder & consolidator.

Suggestions that resolve to the same supplier within one build call are
merged into a single order; a product suggested twice for one supplier
becomes one line with the summed quantity. Unit costs always come from the
supplier catalog. A supplier's order is either built whole or held back
whole (missing catalog costs, unmet supplier minimums); it is never built
with a partial line set.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Mapping, Sequence

from restock_engine.errors import InvalidInput
from restock_engine.planning.records import SupplierTerms
from restock_engine.planning.suggestions import ReorderSuggestion


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LineItem:
    """One product line of a purchase order."""
    product_id: str
    quantity: int
    unit_cost: float

    @property
    def line_total(self) -> float:
        return round(self.quantity * self.unit_cost, 2)


@dataclass
class PurchaseOrderInput:
    """Transient request to create one purchase order for one supplier."""
    supplier_id: str
    line_items: list[LineItem]
    notes: str | None = None
    source_rule_ids: list[str] = field(default_factory=list)

    @property
    def total_cost(self) -> float:
        return round(sum(li.quantity * li.unit_cost for li in self.line_items), 2)

    @property
    def total_quantity(self) -> int:
        return sum(li.quantity for li in self.line_items)


@dataclass
class HeldOrder:
    """A supplier's consolidated order that was not built, and why."""
    supplier_id: str
    reason: str
    product_ids: list[str]


@dataclass
class ConsolidationResult:
    orders: list[PurchaseOrderInput]
    held: list[HeldOrder]


@dataclass
class PurchaseOrderDraft:
    """A fully priced order ready to be persisted in status 'draft'."""
    po_number: str
    supplier_id: str
    line_items: list[LineItem]
    status: str
    created_at: datetime
    total_cost: float
    expected_delivery_date: date
    notes: str | None = None


# ---------------------------------------------------------------------------
# Consolidation
# ---------------------------------------------------------------------------

def _group_by_supplier(suggestions: Sequence[ReorderSuggestion]) -> dict[str, list[ReorderSuggestion]]:
    groups: dict[str, list[ReorderSuggestion]] = {}
    for s in suggestions:
        groups.setdefault(s.supplier_id, []).append(s)
    return groups


def _below_minimum(order: PurchaseOrderInput, terms: SupplierTerms | None) -> str | None:
    if terms is None:
        return None
    if terms.min_order_value is not None and order.total_cost < terms.min_order_value:
        return f"order value {order.total_cost:.2f} below supplier minimum {terms.min_order_value:.2f}"
    if terms.min_order_quantity is not None and order.total_quantity < terms.min_order_quantity:
        return f"order quantity {order.total_quantity} below supplier minimum {terms.min_order_quantity}"
    return None


def exclude_covered(
    suggestions: Sequence[ReorderSuggestion],
    open_quantities: Mapping[tuple[str, str], int],
) -> tuple[list[ReorderSuggestion], list[ReorderSuggestion]]:
    """Split suggestions into (pending, covered).

    A suggestion is covered when its supplier already has a draft or sent
    order with a line for the product. Stock only rises on receipt, so the
    same suggestion keeps coming back until then.
    """
    pending: list[ReorderSuggestion] = []
    covered: list[ReorderSuggestion] = []
    for s in suggestions:
        if open_quantities.get((s.supplier_id, s.product_id), 0) > 0:
            covered.append(s)
        else:
            pending.append(s)
    return pending, covered


def consolidate_suggestions(
    suggestions: Sequence[ReorderSuggestion],
    unit_costs: Mapping[tuple[str, str], float],
    supplier_terms: Mapping[str, SupplierTerms] | None = None,
) -> ConsolidationResult:
    """Merge suggestions into one PurchaseOrderInput per supplier.

    Args:
        suggestions: Suggestions from one generation cycle.
        unit_costs: Supplier catalog cost keyed by (supplier_id, product_id).
        supplier_terms: Optional supplier minimums keyed by supplier_id.

    Returns:
        ConsolidationResult with the built orders and any held-back suppliers.
    """
    terms = supplier_terms or {}
    orders: list[PurchaseOrderInput] = []
    held: list[HeldOrder] = []

    for supplier_id, group in _group_by_supplier(suggestions).items():
        quantities: dict[str, int] = {}
        for s in group:
            quantities[s.product_id] = quantities.get(s.product_id, 0) + s.suggested_quantity

        missing = sorted(p for p in quantities if (supplier_id, p) not in unit_costs)
        if missing:
            held.append(HeldOrder(
                supplier_id=supplier_id,
                reason=f"no catalog cost for {', '.join(missing)}",
                product_ids=sorted(quantities),
            ))
            continue

        order = PurchaseOrderInput(
            supplier_id=supplier_id,
            line_items=[
                LineItem(product_id=p, quantity=q, unit_cost=unit_costs[(supplier_id, p)])
                for p, q in quantities.items()
            ],
            notes=f"Auto-generated from {len(group)} reorder suggestion(s)",
            source_rule_ids=[s.rule_id for s in group if s.rule_id],
        )

        reason = _below_minimum(order, terms.get(supplier_id))
        if reason:
            held.append(HeldOrder(supplier_id=supplier_id, reason=reason, product_ids=sorted(quantities)))
            continue
        orders.append(order)

    return ConsolidationResult(orders=orders, held=held)


# ---------------------------------------------------------------------------
# Drafting
# ---------------------------------------------------------------------------

def validate_order_input(order: PurchaseOrderInput) -> None:
    """Reject empty orders and non-positive quantities or negative costs."""
    if not order.supplier_id:
        raise InvalidInput("supplier_id", "is required")
    if not order.line_items:
        raise InvalidInput("line_items", "at least one line item is required")
    for i, li in enumerate(order.line_items):
        if not li.product_id:
            raise InvalidInput(f"line_items[{i}].product_id", "is required")
        if li.quantity <= 0:
            raise InvalidInput(f"line_items[{i}].quantity", "must be greater than 0")
        if li.unit_cost < 0:
            raise InvalidInput(f"line_items[{i}].unit_cost", "must be zero or positive")


def new_po_number(created_at: datetime) -> str:
    return f"PO-{created_at:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


def draft_purchase_order(
    order: PurchaseOrderInput,
    created_at: datetime,
    lead_time_days: int | None = None,
    default_lead_time_days: int = 7,
) -> PurchaseOrderDraft:
    """Price an order and compute its expected delivery date."""
    validate_order_input(order)
    days = lead_time_days if lead_time_days is not None and lead_time_days >= 0 else default_lead_time_days
    return PurchaseOrderDraft(
        po_number=new_po_number(created_at),
        supplier_id=order.supplier_id,
        line_items=list(order.line_items),
        status="draft",
        created_at=created_at,
        total_cost=order.total_cost,
        expected_delivery_date=(created_at + timedelta(days=days)).date(),
        notes=order.notes,
    )
