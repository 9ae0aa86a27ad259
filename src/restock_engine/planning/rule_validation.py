"""Reorder rule validation — field-level checks run before any rule is stored.

Invariant: 0 <= min_stock <= reorder_point < max_stock (when max_stock is
set) and reorder_quantity > 0.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any

from restock_engine.errors import FieldError, RuleValidationError
from restock_engine.planning.records import RuleSpec


@dataclass
class RuleValidationReport:
    """Outcome of validating one rule."""
    valid: bool
    errors: list[FieldError]

    @property
    def messages(self) -> list[str]:
        return [f"{e.field}: {e.message}" for e in self.errors]


_UPDATABLE_FIELDS = {
    "product_id",
    "supplier_id",
    "reorder_point",
    "reorder_quantity",
    "min_stock",
    "max_stock",
    "lead_time_days",
    "is_active",
    "auto_generate",
}


def validate_reorder_rule(rule: RuleSpec) -> RuleValidationReport:
    """Check a rule against the registry invariants.

    Every violated constraint is reported; nothing is coerced.
    """
    errors: list[FieldError] = []

    if not rule.product_id:
        errors.append(FieldError("product_id", "is required"))
    if not rule.supplier_id:
        errors.append(FieldError("supplier_id", "is required"))

    if rule.reorder_quantity is None or rule.reorder_quantity <= 0:
        errors.append(FieldError("reorder_quantity", "must be greater than 0"))

    if rule.reorder_point is None or rule.reorder_point < 0:
        errors.append(FieldError("reorder_point", "must be zero or positive"))

    if rule.min_stock is None or rule.min_stock < 0:
        errors.append(FieldError("min_stock", "must be zero or positive"))
    elif rule.reorder_point is not None and rule.min_stock > rule.reorder_point:
        errors.append(FieldError(
            "min_stock",
            f"must not exceed reorder_point ({rule.min_stock} > {rule.reorder_point})",
        ))

    if rule.max_stock is not None and rule.reorder_point is not None and rule.max_stock <= rule.reorder_point:
        errors.append(FieldError(
            "max_stock",
            f"must be greater than reorder_point ({rule.max_stock} <= {rule.reorder_point})",
        ))

    if rule.lead_time_days is None or rule.lead_time_days < 0:
        errors.append(FieldError("lead_time_days", "must be zero or positive"))

    return RuleValidationReport(valid=not errors, errors=errors)


def ensure_valid(rule: RuleSpec) -> RuleSpec:
    """Return the rule unchanged or raise RuleValidationError."""
    report = validate_reorder_rule(rule)
    if not report.valid:
        raise RuleValidationError(report.errors)
    return rule


def apply_rule_update(existing: RuleSpec, updates: dict[str, Any]) -> RuleSpec:
    """Overlay a partial update on an existing rule.

    Unknown keys are rejected; an explicit None for max_stock clears the bound.
    """
    unknown = sorted(set(updates) - _UPDATABLE_FIELDS)
    if unknown:
        raise RuleValidationError([FieldError(k, "is not an updatable field") for k in unknown])
    return replace(existing, **updates)


def rule_from_mapping(data: dict[str, Any]) -> RuleSpec:
    """Build a RuleSpec from a plain mapping, ignoring unrelated keys."""
    names = {f.name for f in fields(RuleSpec)}
    return RuleSpec(**{k: v for k, v in data.items() if k in names})
