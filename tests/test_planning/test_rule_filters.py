"""Tests for typed rule filter conditions."""

import pytest

from restock_engine.errors import InvalidInput
from restock_engine.planning.records import RuleSpec
from restock_engine.planning.rule_filters import FilterOp, RuleCondition, RuleField, evaluate, filter_rules

RULES = [
    RuleSpec(product_id="WIDGET-1", supplier_id="acme", reorder_point=10, reorder_quantity=50, id="r1"),
    RuleSpec(product_id="widget-2", supplier_id="globex", reorder_point=40, reorder_quantity=80,
             max_stock=100, id="r2"),
    RuleSpec(product_id="gadget-1", supplier_id="acme", reorder_point=75, reorder_quantity=20,
             is_active=False, id="r3"),
]


def _ids(rules):
    return [r.id for r in rules]


class TestParse:
    def test_typed(self):
        cond = RuleCondition.parse("reorder_point", "gt", 5)
        assert cond.field == RuleField.REORDER_POINT
        assert cond.op == FilterOp.GREATER_THAN

    def test_unknown_field(self):
        with pytest.raises(InvalidInput) as exc:
            RuleCondition.parse("colour", "eq", "red")
        assert exc.value.field == "field"

    def test_unknown_operator(self):
        with pytest.raises(InvalidInput) as exc:
            RuleCondition.parse("reorder_point", "like", 5)
        assert exc.value.field == "op"

    def test_ordering_on_text_field_rejected(self):
        with pytest.raises(InvalidInput):
            RuleCondition.parse("product_id", "gt", "a")

    def test_contains_on_numeric_field_rejected(self):
        with pytest.raises(InvalidInput):
            RuleCondition.parse("reorder_point", "contains", "1")

    def test_between_needs_two_values(self):
        with pytest.raises(InvalidInput):
            RuleCondition.parse("reorder_point", "between", [1])

    def test_in_needs_list(self):
        with pytest.raises(InvalidInput):
            RuleCondition.parse("supplier_id", "in", "acme")


class TestFilterRules:
    def test_between(self):
        cond = RuleCondition.parse("reorder_point", "between", [10, 50])
        assert _ids(filter_rules(RULES, [cond])) == ["r1", "r2"]

    def test_in(self):
        cond = RuleCondition.parse("supplier_id", "in", ["globex", "initech"])
        assert _ids(filter_rules(RULES, [cond])) == ["r2"]

    def test_contains_is_case_insensitive(self):
        cond = RuleCondition.parse("product_id", "contains", "widget")
        assert _ids(filter_rules(RULES, [cond])) == ["r1", "r2"]

    def test_conditions_are_anded(self):
        conds = [
            RuleCondition.parse("supplier_id", "eq", "acme"),
            RuleCondition.parse("is_active", "eq", True),
        ]
        assert _ids(filter_rules(RULES, conds)) == ["r1"]

    def test_unbounded_max_stock_never_matches_ordering(self):
        cond = RuleCondition.parse("max_stock", "lte", 1000)
        assert _ids(filter_rules(RULES, [cond])) == ["r2"]

    def test_ne(self):
        cond = RuleCondition.parse("supplier_id", "ne", "acme")
        assert evaluate(cond, RULES[1])
        assert not evaluate(cond, RULES[0])

    def test_no_conditions_returns_all(self):
        assert len(filter_rules(RULES, [])) == 3
