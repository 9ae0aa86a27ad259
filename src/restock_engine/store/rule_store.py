"""CRUD for reorder rules.

Every mutation validates first and commits once; an invalid rule never
reaches the database, and a failed commit is rolled back.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restock_engine.db.models import ReorderRule
from restock_engine.errors import NotFound
from restock_engine.planning.records import RuleSpec
from restock_engine.planning.rule_validation import apply_rule_update, ensure_valid
from restock_engine.store.guard import store_call

logger = logging.getLogger(__name__)


def to_spec(row: ReorderRule) -> RuleSpec:
    """Plain planning view of a stored rule."""
    return RuleSpec(
        id=row.id,
        product_id=row.product_id,
        supplier_id=row.supplier_id,
        reorder_point=row.reorder_point,
        reorder_quantity=row.reorder_quantity,
        min_stock=row.min_stock,
        max_stock=row.max_stock,
        lead_time_days=row.lead_time_days,
        is_active=row.is_active,
        auto_generate=row.auto_generate,
    )


async def create_rule(session: AsyncSession, spec: RuleSpec) -> ReorderRule:
    """Validate and insert a new rule."""
    ensure_valid(spec)
    row = ReorderRule(
        product_id=spec.product_id,
        supplier_id=spec.supplier_id,
        reorder_point=spec.reorder_point,
        reorder_quantity=spec.reorder_quantity,
        min_stock=spec.min_stock,
        max_stock=spec.max_stock,
        lead_time_days=spec.lead_time_days,
        is_active=spec.is_active,
        auto_generate=spec.auto_generate,
    )
    if spec.id:
        row.id = spec.id

    async with store_call("create reorder rule", session):
        session.add(row)
        await session.commit()
        await session.refresh(row)

    logger.info("Created reorder rule %s for product %s / supplier %s", row.id, row.product_id, row.supplier_id)
    return row


async def get_rule(session: AsyncSession, rule_id: str) -> ReorderRule | None:
    async with store_call("read reorder rule"):
        result = await session.execute(select(ReorderRule).where(ReorderRule.id == rule_id))
        return result.scalar_one_or_none()


async def _require_rule(session: AsyncSession, rule_id: str) -> ReorderRule:
    row = await get_rule(session, rule_id)
    if row is None:
        raise NotFound("Reorder rule", rule_id)
    return row


async def update_rule(session: AsyncSession, rule_id: str, updates: dict[str, Any]) -> ReorderRule:
    """Apply a partial update; the merged rule must pass full validation."""
    row = await _require_rule(session, rule_id)
    merged = ensure_valid(apply_rule_update(to_spec(row), updates))

    for key in updates:
        setattr(row, key, getattr(merged, key))

    async with store_call("update reorder rule", session):
        await session.commit()
        await session.refresh(row)
    return row


async def set_rule_active(session: AsyncSession, rule_id: str, is_active: bool) -> ReorderRule:
    """Flip only the is_active flag; other fields are not re-validated."""
    row = await _require_rule(session, rule_id)
    row.is_active = is_active
    async with store_call("toggle reorder rule", session):
        await session.commit()
        await session.refresh(row)
    logger.info("Reorder rule %s %s", rule_id, "activated" if is_active else "deactivated")
    return row


async def delete_rule(session: AsyncSession, rule_id: str) -> bool:
    """Hard-delete a rule. Returns False if it did not exist."""
    row = await get_rule(session, rule_id)
    if row is None:
        return False
    async with store_call("delete reorder rule", session):
        await session.delete(row)
        await session.commit()
    return True


async def list_rules(
    session: AsyncSession,
    product_id: str | None = None,
    supplier_id: str | None = None,
    active: bool | None = None,
) -> list[ReorderRule]:
    """Rules filtered by product, supplier and/or active flag."""
    q = select(ReorderRule).order_by(ReorderRule.product_id, ReorderRule.supplier_id)
    if product_id:
        q = q.where(ReorderRule.product_id == product_id)
    if supplier_id:
        q = q.where(ReorderRule.supplier_id == supplier_id)
    if active is not None:
        q = q.where(ReorderRule.is_active == active)  # noqa: E712

    async with store_call("list reorder rules"):
        result = await session.execute(q)
        return list(result.scalars().all())
