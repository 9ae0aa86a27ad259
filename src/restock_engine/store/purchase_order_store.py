"""Persistence for purchase orders and their lifecycle transitions.

Creation writes the header and every line in one commit. Transitions are
conditional updates on (status, version): if another request moved the
order first, zero rows match and ConcurrentModification is raised instead
of double-receiving or losing a cancellation. Nothing here retries.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from restock_engine.db.models import PurchaseOrder, PurchaseOrderLine
from restock_engine.errors import ConcurrentModification, NotFound
from restock_engine.planning.po_builder import PurchaseOrderDraft
from restock_engine.planning.po_lifecycle import POAction, POStatus, plan_transition
from restock_engine.store.guard import store_call
from restock_engine.store.stock_ledger import StockLedger

logger = logging.getLogger(__name__)


async def create_purchase_order(session: AsyncSession, draft: PurchaseOrderDraft) -> PurchaseOrder:
    """Insert the order and all of its lines atomically."""
    po = PurchaseOrder(
        po_number=draft.po_number,
        supplier_id=draft.supplier_id,
        status=draft.status,
        total_cost=draft.total_cost,
        notes=draft.notes,
        expected_delivery_date=draft.expected_delivery_date,
        created_at=draft.created_at,
        version=1,
    )

    async with store_call("create purchase order", session):
        session.add(po)
        await session.flush()  # assigns po.id
        for li in draft.line_items:
            session.add(PurchaseOrderLine(
                purchase_order_id=po.id,
                product_id=li.product_id,
                quantity=li.quantity,
                unit_cost=li.unit_cost,
                line_total=li.line_total,
            ))
        await session.commit()
        await session.refresh(po)

    logger.info(
        "Created purchase order %s (%s) for supplier %s: %d line(s), total %.2f",
        po.id, draft.po_number, draft.supplier_id, len(draft.line_items), draft.total_cost,
    )
    return po


async def get_purchase_order(session: AsyncSession, order_id: str) -> PurchaseOrder | None:
    async with store_call("read purchase order"):
        result = await session.execute(select(PurchaseOrder).where(PurchaseOrder.id == order_id))
        return result.scalar_one_or_none()


async def get_lines(session: AsyncSession, order_id: str) -> list[PurchaseOrderLine]:
    async with store_call("read purchase order lines"):
        result = await session.execute(
            select(PurchaseOrderLine)
            .where(PurchaseOrderLine.purchase_order_id == order_id)
            .order_by(PurchaseOrderLine.id)
        )
        return list(result.scalars().all())


async def list_purchase_orders(
    session: AsyncSession,
    status: str | None = None,
    supplier_id: str | None = None,
    limit: int = 100,
) -> list[PurchaseOrder]:
    """Newest first, optionally filtered by status and supplier."""
    q = select(PurchaseOrder).order_by(PurchaseOrder.created_at.desc())
    if status:
        q = q.where(PurchaseOrder.status == status)
    if supplier_id:
        q = q.where(PurchaseOrder.supplier_id == supplier_id)
    q = q.limit(limit)

    async with store_call("list purchase orders"):
        result = await session.execute(q)
        return list(result.scalars().all())


OPEN_STATUSES = (POStatus.DRAFT.value, POStatus.SENT.value)


async def get_open_order_quantities(
    session: AsyncSession,
    supplier_ids: list[str] | None = None,
) -> dict[tuple[str, str], int]:
    """Quantity still on order (draft or sent), keyed by (supplier_id, product_id)."""
    q = (
        select(
            PurchaseOrder.supplier_id,
            PurchaseOrderLine.product_id,
            func.sum(PurchaseOrderLine.quantity),
        )
        .join(PurchaseOrderLine, PurchaseOrderLine.purchase_order_id == PurchaseOrder.id)
        .where(PurchaseOrder.status.in_(OPEN_STATUSES))
        .group_by(PurchaseOrder.supplier_id, PurchaseOrderLine.product_id)
    )
    if supplier_ids is not None:
        q = q.where(PurchaseOrder.supplier_id.in_(supplier_ids))

    async with store_call("read open purchase order lines"):
        result = await session.execute(q)
        return {(supplier_id, product_id): int(qty or 0) for supplier_id, product_id, qty in result.all()}


async def transition(
    session: AsyncSession,
    order_id: str,
    action: str,
    now: datetime,
    ledger: StockLedger | None = None,
) -> PurchaseOrder:
    """Move an order through the lifecycle.

    Raises:
        NotFound: no such order.
        InvalidTransition: the current status does not allow the action.
        ConcurrentModification: the order changed between read and write.
    """
    po = await get_purchase_order(session, order_id)
    if po is None:
        raise NotFound("Purchase order", order_id)

    step = plan_transition(po.status, action, order_id)
    if step.action == POAction.RECEIVE and ledger is None:
        raise ValueError("receiving a purchase order requires a stock ledger")

    stmt = (
        update(PurchaseOrder)
        .where(PurchaseOrder.id == order_id)
        .where(PurchaseOrder.status == step.source.value)
        .where(PurchaseOrder.version == po.version)
        .values(status=step.target.value, version=po.version + 1, **{step.timestamp_field: now})
        .execution_options(synchronize_session=False)
    )

    async with store_call(f"{step.action.value} purchase order", session):
        result = await session.execute(stmt)
        if result.rowcount != 1:
            raise ConcurrentModification(order_id, step.source.value)

        if step.action == POAction.RECEIVE:
            for line in await get_lines(session, order_id):
                await ledger.increase(session, line.product_id, line.quantity)

        await session.commit()
        await session.refresh(po)

    logger.info("Purchase order %s: %s -> %s", order_id, step.source.value, step.target.value)
    return po


async def approve(session: AsyncSession, order_id: str, now: datetime) -> PurchaseOrder:
    return await transition(session, order_id, POAction.APPROVE.value, now)


async def cancel(session: AsyncSession, order_id: str, now: datetime) -> PurchaseOrder:
    return await transition(session, order_id, POAction.CANCEL.value, now)


async def receive(session: AsyncSession, order_id: str, now: datetime, ledger: StockLedger) -> PurchaseOrder:
    return await transition(session, order_id, POAction.RECEIVE.value, now, ledger)
