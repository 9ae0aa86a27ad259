"""Tests for the reorder suggestion generator."""

from datetime import datetime, timezone

import pytest

from restock_engine.planning.records import RuleSpec, StockSnapshot
from restock_engine.planning.suggestions import (
    eoq_quantity_for,
    find_upcoming_reorders,
    generate_suggestions,
    suggested_quantity,
)

NOW = datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)


def _rule(product_id="p1", supplier_id="s1", reorder_point=58, reorder_quantity=100, **kwargs) -> RuleSpec:
    return RuleSpec(
        product_id=product_id,
        supplier_id=supplier_id,
        reorder_point=reorder_point,
        reorder_quantity=reorder_quantity,
        id=kwargs.pop("id", f"rule-{product_id}"),
        **kwargs,
    )


def _stock(**levels) -> dict:
    return {pid: StockSnapshot(product_id=pid, current_stock=qty) for pid, qty in levels.items()}


class TestGenerateSuggestions:
    def test_triggers_at_or_below_reorder_point(self):
        suggestions = generate_suggestions([_rule()], _stock(p1=50), NOW)
        assert len(suggestions) == 1
        s = suggestions[0]
        assert s.product_id == "p1"
        assert s.trigger_stock == 50
        assert s.suggested_quantity == 100
        assert s.generated_at == NOW
        assert s.rule_id == "rule-p1"

    def test_equal_to_reorder_point_triggers(self):
        assert len(generate_suggestions([_rule()], _stock(p1=58), NOW)) == 1

    def test_above_reorder_point_does_not_trigger(self):
        assert generate_suggestions([_rule()], _stock(p1=59), NOW) == []

    def test_inactive_rules_ignored(self):
        assert generate_suggestions([_rule(is_active=False)], _stock(p1=0), NOW) == []

    def test_missing_snapshot_skipped(self):
        assert generate_suggestions([_rule(product_id="ghost")], _stock(p1=0), NOW) == []

    def test_eoq_raises_quantity(self):
        # D = 10.5 * 365, S = 50, H = 4.0 * 0.25 -> EOQ ~619
        suggestions = generate_suggestions(
            [_rule()],
            _stock(p1=50),
            NOW,
            mean_daily_demand={"p1": 10.5},
            unit_costs={("s1", "p1"): 4.0},
        )
        s = suggestions[0]
        assert s.eoq_quantity == 619
        assert s.suggested_quantity == 619
        assert s.estimated_cost == pytest.approx(2476.0)

    def test_rule_quantity_wins_when_larger(self):
        suggestions = generate_suggestions(
            [_rule(reorder_quantity=1000)],
            _stock(p1=50),
            NOW,
            mean_daily_demand={"p1": 10.5},
            unit_costs={("s1", "p1"): 4.0},
        )
        assert suggestions[0].suggested_quantity == 1000

    def test_no_unit_cost_falls_back_to_rule_quantity(self):
        suggestions = generate_suggestions([_rule()], _stock(p1=50), NOW, mean_daily_demand={"p1": 10.5})
        assert suggestions[0].eoq_quantity is None
        assert suggestions[0].suggested_quantity == 100
        assert suggestions[0].estimated_cost is None

    def test_pack_size_applied(self):
        suggestions = generate_suggestions(
            [_rule(reorder_quantity=95)], _stock(p1=10), NOW, pack_sizes={"p1": 12},
        )
        assert suggestions[0].suggested_quantity == 96

    def test_days_and_priority(self):
        suggestions = generate_suggestions([_rule()], _stock(p1=50), NOW, mean_daily_demand={"p1": 10.5})
        assert suggestions[0].days_until_stockout == pytest.approx(4.76)
        assert suggestions[0].priority == "medium"

    def test_sorted_by_urgency(self):
        rules = [_rule("slow"), _rule("fast"), _rule("idle")]
        suggestions = generate_suggestions(
            rules,
            _stock(slow=50, fast=20, idle=30),
            NOW,
            mean_daily_demand={"slow": 2.0, "fast": 10.0},
        )
        assert [s.product_id for s in suggestions] == ["fast", "slow", "idle"]
        assert [s.priority for s in suggestions] == ["high", "low", "low"]

    def test_deterministic(self):
        rules = [_rule("a"), _rule("b"), _rule("c", supplier_id="s2")]
        stock = _stock(a=1, b=2, c=3)
        assert generate_suggestions(rules, stock, NOW) == generate_suggestions(rules, stock, NOW)


class TestQuantityHelpers:
    def test_eoq_quantity_none_without_demand(self):
        assert eoq_quantity_for(0.0, 4.0, 50.0, 0.25) is None

    def test_eoq_quantity_none_without_cost(self):
        assert eoq_quantity_for(10.0, None, 50.0, 0.25) is None

    def test_suggested_quantity(self):
        assert suggested_quantity(_rule(reorder_quantity=40), 55, 10) == 60
        assert suggested_quantity(_rule(reorder_quantity=40), None, None) == 40


class TestUpcomingReorders:
    def test_within_margin(self):
        rules = [_rule("a", reorder_point=50), _rule("b", reorder_point=50), _rule("c", reorder_point=50)]
        upcoming = find_upcoming_reorders(rules, _stock(a=55, b=60, c=61), margin=0.2)
        assert [u.product_id for u in upcoming] == ["a", "b"]
        assert upcoming[0].headroom == 5

    def test_triggered_rules_excluded(self):
        assert find_upcoming_reorders([_rule(reorder_point=50)], _stock(p1=50)) == []

    def test_inactive_excluded(self):
        assert find_upcoming_reorders([_rule(reorder_point=50, is_active=False)], _stock(p1=55)) == []
