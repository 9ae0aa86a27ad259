"""Rule filters: a closed set of field/operator conditions over reorder rules.

Conditions name a known rule field and one of a fixed set of operators;
anything else is rejected up front instead of being looked up dynamically.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from restock_engine.errors import InvalidInput
from restock_engine.planning.records import RuleSpec


class FilterOp(str, Enum):
    EQUALS = "eq"
    NOT_EQUALS = "ne"
    GREATER_THAN = "gt"
    GREATER_OR_EQUAL = "gte"
    LESS_THAN = "lt"
    LESS_OR_EQUAL = "lte"
    BETWEEN = "between"
    IN = "in"
    CONTAINS = "contains"


class RuleField(str, Enum):
    PRODUCT_ID = "product_id"
    SUPPLIER_ID = "supplier_id"
    REORDER_POINT = "reorder_point"
    REORDER_QUANTITY = "reorder_quantity"
    MIN_STOCK = "min_stock"
    MAX_STOCK = "max_stock"
    LEAD_TIME_DAYS = "lead_time_days"
    IS_ACTIVE = "is_active"
    AUTO_GENERATE = "auto_generate"


_NUMERIC_FIELDS = {
    RuleField.REORDER_POINT,
    RuleField.REORDER_QUANTITY,
    RuleField.MIN_STOCK,
    RuleField.MAX_STOCK,
    RuleField.LEAD_TIME_DAYS,
}
_TEXT_FIELDS = {RuleField.PRODUCT_ID, RuleField.SUPPLIER_ID}
_ORDERING_OPS = {
    FilterOp.GREATER_THAN,
    FilterOp.GREATER_OR_EQUAL,
    FilterOp.LESS_THAN,
    FilterOp.LESS_OR_EQUAL,
    FilterOp.BETWEEN,
}

_ACCESSORS: dict[RuleField, Callable[[RuleSpec], Any]] = {
    RuleField.PRODUCT_ID: lambda r: r.product_id,
    RuleField.SUPPLIER_ID: lambda r: r.supplier_id,
    RuleField.REORDER_POINT: lambda r: r.reorder_point,
    RuleField.REORDER_QUANTITY: lambda r: r.reorder_quantity,
    RuleField.MIN_STOCK: lambda r: r.min_stock,
    RuleField.MAX_STOCK: lambda r: r.max_stock,
    RuleField.LEAD_TIME_DAYS: lambda r: r.lead_time_days,
    RuleField.IS_ACTIVE: lambda r: r.is_active,
    RuleField.AUTO_GENERATE: lambda r: r.auto_generate,
}


@dataclass(frozen=True)
class RuleCondition:
    """One typed condition, e.g. reorder_point between (10, 50)."""
    field: RuleField
    op: FilterOp
    value: Any

    @classmethod
    def parse(cls, field: str, op: str, value: Any) -> "RuleCondition":
        """Build a condition from untyped input, rejecting unknown names."""
        try:
            rule_field = RuleField(field)
        except ValueError:
            raise InvalidInput("field", f"unknown rule field '{field}'") from None
        try:
            rule_op = FilterOp(op)
        except ValueError:
            raise InvalidInput("op", f"unknown operator '{op}'") from None

        if rule_op in _ORDERING_OPS and rule_field not in _NUMERIC_FIELDS:
            raise InvalidInput("op", f"'{op}' requires a numeric field, got '{field}'")
        if rule_op == FilterOp.CONTAINS and rule_field not in _TEXT_FIELDS:
            raise InvalidInput("op", f"'contains' requires a text field, got '{field}'")
        if rule_op == FilterOp.BETWEEN:
            if not isinstance(value, (list, tuple)) or len(value) != 2:
                raise InvalidInput("value", "'between' expects [low, high]")
            value = (value[0], value[1])
        if rule_op == FilterOp.IN:
            if not isinstance(value, (list, tuple, set)):
                raise InvalidInput("value", "'in' expects a list")
            value = tuple(value)
        return cls(field=rule_field, op=rule_op, value=value)


def evaluate(condition: RuleCondition, rule: RuleSpec) -> bool:
    """Evaluate one condition against one rule."""
    actual = _ACCESSORS[condition.field](rule)
    op = condition.op
    expected = condition.value

    if op == FilterOp.EQUALS:
        return actual == expected
    if op == FilterOp.NOT_EQUALS:
        return actual != expected
    if op == FilterOp.IN:
        return actual in expected
    if op == FilterOp.CONTAINS:
        return actual is not None and str(expected).lower() in str(actual).lower()

    # Ordering operators; an unbounded max_stock never satisfies them
    if actual is None:
        return False
    if op == FilterOp.GREATER_THAN:
        return actual > expected
    if op == FilterOp.GREATER_OR_EQUAL:
        return actual >= expected
    if op == FilterOp.LESS_THAN:
        return actual < expected
    if op == FilterOp.LESS_OR_EQUAL:
        return actual <= expected
    low, high = expected
    return low <= actual <= high


def filter_rules(rules: list[RuleSpec], conditions: list[RuleCondition]) -> list[RuleSpec]:
    """Rules matching every condition (AND)."""
    return [r for r in rules if all(evaluate(c, r) for c in conditions)]
