"""Tests for purchase order consolidation and drafting."""

import re
from datetime import date, datetime, timezone

import pytest

from restock_engine.errors import InvalidInput
from restock_engine.planning.po_builder import (
    LineItem,
    PurchaseOrderInput,
    consolidate_suggestions,
    draft_purchase_order,
    exclude_covered,
    new_po_number,
    validate_order_input,
)
from restock_engine.planning.records import SupplierTerms
from restock_engine.planning.suggestions import ReorderSuggestion

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _suggestion(product_id, supplier_id="s1", qty=10, rule_id=None) -> ReorderSuggestion:
    return ReorderSuggestion(
        product_id=product_id,
        supplier_id=supplier_id,
        suggested_quantity=qty,
        trigger_stock=0,
        rule_id=rule_id or f"rule-{product_id}",
        generated_at=NOW,
        reorder_point=5,
        eoq_quantity=None,
        unit_cost=None,
        estimated_cost=None,
        days_until_stockout=None,
        priority="low",
    )


COSTS = {("s1", "p1"): 2.0, ("s1", "p2"): 3.5, ("s2", "p3"): 1.0}


class TestConsolidateSuggestions:
    def test_same_supplier_becomes_one_order(self):
        result = consolidate_suggestions([_suggestion("p1"), _suggestion("p2", qty=4)], COSTS)
        assert len(result.orders) == 1
        order = result.orders[0]
        assert order.supplier_id == "s1"
        assert {li.product_id for li in order.line_items} == {"p1", "p2"}
        assert order.total_cost == pytest.approx(34.0)
        assert order.source_rule_ids == ["rule-p1", "rule-p2"]
        assert result.held == []

    def test_one_order_per_supplier(self):
        result = consolidate_suggestions([_suggestion("p1"), _suggestion("p3", supplier_id="s2")], COSTS)
        assert sorted(o.supplier_id for o in result.orders) == ["s1", "s2"]

    def test_repeated_product_summed(self):
        result = consolidate_suggestions([_suggestion("p1", qty=10), _suggestion("p1", qty=5)], COSTS)
        lines = result.orders[0].line_items
        assert len(lines) == 1
        assert lines[0].quantity == 15

    def test_unit_cost_from_catalog(self):
        result = consolidate_suggestions([_suggestion("p2")], COSTS)
        assert result.orders[0].line_items[0].unit_cost == 3.5

    def test_missing_cost_holds_whole_supplier(self):
        result = consolidate_suggestions([_suggestion("p1"), _suggestion("p9")], COSTS)
        assert result.orders == []
        assert result.held[0].supplier_id == "s1"
        assert "p9" in result.held[0].reason
        assert result.held[0].product_ids == ["p1", "p9"]

    def test_below_minimum_value_held(self):
        terms = {"s1": SupplierTerms(supplier_id="s1", min_order_value=100.0)}
        result = consolidate_suggestions([_suggestion("p1")], COSTS, terms)
        assert result.orders == []
        assert "minimum" in result.held[0].reason

    def test_below_minimum_quantity_held(self):
        terms = {"s1": SupplierTerms(supplier_id="s1", min_order_quantity=50)}
        result = consolidate_suggestions([_suggestion("p1", qty=20)], COSTS, terms)
        assert result.orders == []

    def test_note_counts_suggestions(self):
        result = consolidate_suggestions([_suggestion("p1"), _suggestion("p2")], COSTS)
        assert result.orders[0].notes == "Auto-generated from 2 reorder suggestion(s)"

    def test_empty(self):
        result = consolidate_suggestions([], COSTS)
        assert result.orders == [] and result.held == []


class TestExcludeCovered:
    def test_open_order_covers_same_supplier_and_product(self):
        pending, covered = exclude_covered(
            [_suggestion("p1"), _suggestion("p2"), _suggestion("p3", supplier_id="s2")],
            {("s1", "p1"): 100, ("s2", "p1"): 40},
        )
        assert [s.product_id for s in pending] == ["p2", "p3"]
        assert [s.product_id for s in covered] == ["p1"]

    def test_other_supplier_does_not_cover(self):
        pending, covered = exclude_covered([_suggestion("p1", supplier_id="s2")], {("s1", "p1"): 100})
        assert len(pending) == 1
        assert covered == []

    def test_nothing_open(self):
        pending, covered = exclude_covered([_suggestion("p1")], {})
        assert len(pending) == 1
        assert covered == []


class TestValidateOrderInput:
    def test_empty_line_items(self):
        with pytest.raises(InvalidInput) as exc:
            validate_order_input(PurchaseOrderInput(supplier_id="s1", line_items=[]))
        assert exc.value.field == "line_items"

    def test_non_positive_quantity(self):
        order = PurchaseOrderInput(supplier_id="s1", line_items=[LineItem("p1", 0, 2.0)])
        with pytest.raises(InvalidInput) as exc:
            validate_order_input(order)
        assert exc.value.field == "line_items[0].quantity"

    def test_negative_cost(self):
        order = PurchaseOrderInput(supplier_id="s1", line_items=[LineItem("p1", 1, -2.0)])
        with pytest.raises(InvalidInput):
            validate_order_input(order)


class TestDraftPurchaseOrder:
    def test_po_number_format(self):
        assert re.match(r"^PO-20240301-[0-9A-F]{6}$", new_po_number(NOW))

    def test_draft(self):
        order = PurchaseOrderInput(supplier_id="s1", line_items=[LineItem("p1", 10, 2.5), LineItem("p2", 3, 1.0)])
        draft = draft_purchase_order(order, NOW, lead_time_days=5)
        assert draft.status == "draft"
        assert draft.total_cost == pytest.approx(28.0)
        assert draft.expected_delivery_date == date(2024, 3, 6)
        assert draft.created_at == NOW

    def test_default_lead_time(self):
        order = PurchaseOrderInput(supplier_id="s1", line_items=[LineItem("p1", 1, 1.0)])
        draft = draft_purchase_order(order, NOW, lead_time_days=None, default_lead_time_days=7)
        assert draft.expected_delivery_date == date(2024, 3, 8)

    def test_line_total(self):
        assert LineItem("p1", 3, 1.105).line_total == pytest.approx(3.32, abs=0.01)
