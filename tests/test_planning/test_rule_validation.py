"""Tests for reorder rule validation and partial updates."""

import pytest

from restock_engine.errors import RuleValidationError
from restock_engine.planning.records import RuleSpec
from restock_engine.planning.rule_validation import (
    apply_rule_update,
    ensure_valid,
    rule_from_mapping,
    validate_reorder_rule,
)


def _rule(**kwargs) -> RuleSpec:
    base = dict(product_id="p1", supplier_id="s1", reorder_point=50, reorder_quantity=100, min_stock=10)
    base.update(kwargs)
    return RuleSpec(**base)


class TestValidateReorderRule:
    def test_valid(self):
        report = validate_reorder_rule(_rule(max_stock=200))
        assert report.valid
        assert report.errors == []

    def test_min_stock_above_reorder_point(self):
        report = validate_reorder_rule(_rule(min_stock=60))
        assert not report.valid
        assert [e.field for e in report.errors] == ["min_stock"]

    def test_max_stock_must_exceed_reorder_point(self):
        report = validate_reorder_rule(_rule(max_stock=50))
        assert [e.field for e in report.errors] == ["max_stock"]

    def test_zero_quantity(self):
        report = validate_reorder_rule(_rule(reorder_quantity=0))
        assert [e.field for e in report.errors] == ["reorder_quantity"]

    def test_reports_every_violation(self):
        report = validate_reorder_rule(_rule(product_id="", reorder_quantity=-1, lead_time_days=-3))
        fields = {e.field for e in report.errors}
        assert fields == {"product_id", "reorder_quantity", "lead_time_days"}
        assert len(report.messages) == 3

    def test_zero_reorder_point_allowed(self):
        assert validate_reorder_rule(_rule(reorder_point=0, min_stock=0)).valid


class TestEnsureValid:
    def test_returns_rule(self):
        rule = _rule()
        assert ensure_valid(rule) is rule

    def test_raises_with_field_errors(self):
        with pytest.raises(RuleValidationError) as exc:
            ensure_valid(_rule(min_stock=80))
        assert exc.value.errors[0].field == "min_stock"


class TestApplyRuleUpdate:
    def test_overlays_fields(self):
        updated = apply_rule_update(_rule(), {"reorder_point": 70})
        assert updated.reorder_point == 70
        assert updated.reorder_quantity == 100

    def test_explicit_none_clears_max_stock(self):
        updated = apply_rule_update(_rule(max_stock=200), {"max_stock": None})
        assert updated.max_stock is None

    def test_unknown_field_rejected(self):
        with pytest.raises(RuleValidationError) as exc:
            apply_rule_update(_rule(), {"colour": "red"})
        assert exc.value.errors[0].field == "colour"

    def test_does_not_mutate_original(self):
        rule = _rule()
        apply_rule_update(rule, {"reorder_point": 5, "min_stock": 0})
        assert rule.reorder_point == 50


class TestRuleFromMapping:
    def test_ignores_unrelated_keys(self):
        rule = rule_from_mapping({
            "product_id": "p1",
            "supplier_id": "s1",
            "reorder_point": 10,
            "reorder_quantity": 20,
            "created_at": "2024-01-01",
        })
        assert rule.product_id == "p1"
        assert rule.min_stock == 0
