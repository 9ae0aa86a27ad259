"""Reorder rule routes."""

import logging
from dataclasses import asdict
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from restock_engine.action.dependencies import get_service
from restock_engine.db.models import ReorderRule
from restock_engine.planning.records import RuleSpec
from restock_engine.planning.rule_filters import RuleCondition
from restock_engine.service.engine import ReplenishmentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reorder-rules"])


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------


class RuleCreateRequest(BaseModel):
    product_id: str
    supplier_id: str
    reorder_point: int
    reorder_quantity: int
    min_stock: int = 0
    max_stock: Optional[int] = None
    lead_time_days: int = 0
    is_active: bool = True
    auto_generate: bool = False


class RuleUpdateRequest(BaseModel):
    product_id: Optional[str] = None
    supplier_id: Optional[str] = None
    reorder_point: Optional[int] = None
    reorder_quantity: Optional[int] = None
    min_stock: Optional[int] = None
    max_stock: Optional[int] = None
    lead_time_days: Optional[int] = None
    is_active: Optional[bool] = None
    auto_generate: Optional[bool] = None


class RuleToggleRequest(BaseModel):
    is_active: Optional[bool] = None  # omitted = flip


class RuleConditionRequest(BaseModel):
    field: str
    op: str
    value: Any = None


class RuleSearchRequest(BaseModel):
    conditions: list[RuleConditionRequest] = []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def rule_to_dict(row: ReorderRule) -> dict:
    return {
        "id": row.id,
        "product_id": row.product_id,
        "supplier_id": row.supplier_id,
        "reorder_point": row.reorder_point,
        "reorder_quantity": row.reorder_quantity,
        "min_stock": row.min_stock,
        "max_stock": row.max_stock,
        "lead_time_days": row.lead_time_days,
        "is_active": row.is_active,
        "auto_generate": row.auto_generate,
        "last_triggered_at": row.last_triggered_at.isoformat() if row.last_triggered_at else None,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/reorder-rules", status_code=201)
async def create_rule(
    req: RuleCreateRequest,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    """Create a reorder rule. Invalid rules are rejected with field-level errors."""
    row = await service.create_rule(RuleSpec(**req.model_dump()))
    return rule_to_dict(row)


@router.get("/reorder-rules")
async def list_rules(
    product_id: Optional[str] = None,
    supplier_id: Optional[str] = None,
    active: Optional[bool] = None,
    service: ReplenishmentService = Depends(get_service),
) -> list[dict]:
    rows = await service.list_rules(product_id, supplier_id, active)
    return [rule_to_dict(r) for r in rows]


@router.post("/reorder-rules/search")
async def search_rules(
    req: RuleSearchRequest,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    """Filter rules with field/operator conditions, combined with AND."""
    conditions = [RuleCondition.parse(c.field, c.op, c.value) for c in req.conditions]
    rules = await service.search_rules(conditions)
    return {"count": len(rules), "rules": [asdict(r) for r in rules]}


@router.get("/reorder-rules/{rule_id}")
async def get_rule(
    rule_id: str,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    return rule_to_dict(await service.get_rule(rule_id))


@router.put("/reorder-rules/{rule_id}")
async def update_rule(
    rule_id: str,
    req: RuleUpdateRequest,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    """Partial update; only fields present in the body are changed."""
    updates = req.model_dump(exclude_unset=True)
    if not updates:
        return rule_to_dict(await service.get_rule(rule_id))
    row = await service.update_rule(rule_id, updates)
    return rule_to_dict(row)


@router.post("/reorder-rules/{rule_id}/toggle")
async def toggle_rule(
    rule_id: str,
    req: Optional[RuleToggleRequest] = None,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    is_active = req.is_active if req else None
    if is_active is None:
        current = await service.get_rule(rule_id)
        is_active = not current.is_active
    row = await service.toggle_rule(rule_id, is_active)
    return rule_to_dict(row)


@router.delete("/reorder-rules/{rule_id}")
async def delete_rule(
    rule_id: str,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    if not await service.delete_rule(rule_id):
        raise HTTPException(status_code=404, detail=f"Reorder rule {rule_id} not found")
    return {"status": "deleted", "id": rule_id}
