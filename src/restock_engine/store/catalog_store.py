"""Read-only access to the catalog, supplier directory and demand ledger.

These are inputs owned by other parts of the platform; nothing here writes.
Every function is an idempotent read and may be retried by the caller.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restock_engine.db.models import DemandRecord, Product, PurchaseOrder, Supplier, SupplierProduct
from restock_engine.planning.records import DemandHistoryPoint, ReceiptRecord, StockSnapshot, SupplierTerms
from restock_engine.store.guard import store_call

logger = logging.getLogger(__name__)


async def get_stock_snapshots(
    session: AsyncSession,
    product_ids: Iterable[str] | None = None,
) -> dict[str, StockSnapshot]:
    """Current stock per product, keyed by product_id."""
    q = select(Product.id, Product.current_stock, Product.stock_updated_at)
    if product_ids is not None:
        q = q.where(Product.id.in_(list(product_ids)))

    async with store_call("read stock snapshots"):
        result = await session.execute(q)
        rows = result.all()

    return {
        pid: StockSnapshot(product_id=pid, current_stock=int(stock or 0), as_of=as_of)
        for pid, stock, as_of in rows
    }


async def get_product(session: AsyncSession, product_id: str) -> Product | None:
    async with store_call("read product"):
        result = await session.execute(select(Product).where(Product.id == product_id))
        return result.scalar_one_or_none()


async def get_pack_sizes(
    session: AsyncSession,
    product_ids: Iterable[str] | None = None,
) -> dict[str, int | None]:
    q = select(Product.id, Product.pack_size)
    if product_ids is not None:
        q = q.where(Product.id.in_(list(product_ids)))
    async with store_call("read pack sizes"):
        result = await session.execute(q)
        return {pid: pack for pid, pack in result.all()}


async def get_demand_history(
    session: AsyncSession,
    product_id: str,
    since: date | None = None,
) -> list[DemandHistoryPoint]:
    """Demand records for one product, oldest first."""
    history = await get_demand_histories(session, [product_id], since)
    return history.get(product_id, [])


async def get_demand_histories(
    session: AsyncSession,
    product_ids: Iterable[str],
    since: date | None = None,
) -> dict[str, list[DemandHistoryPoint]]:
    """Demand records for several products, each list oldest first."""
    ids = list(product_ids)
    if not ids:
        return {}
    q = (
        select(DemandRecord.product_id, DemandRecord.date, DemandRecord.units_sold)
        .where(DemandRecord.product_id.in_(ids))
        .order_by(DemandRecord.product_id, DemandRecord.date)
    )
    if since is not None:
        q = q.where(DemandRecord.date >= since)

    async with store_call("read demand history"):
        result = await session.execute(q)
        rows = result.all()

    out: dict[str, list[DemandHistoryPoint]] = defaultdict(list)
    for pid, day, units in rows:
        out[pid].append(DemandHistoryPoint(product_id=pid, date=day, units_sold=float(units or 0)))
    return dict(out)


async def get_unit_costs(
    session: AsyncSession,
    supplier_ids: Iterable[str] | None = None,
) -> dict[tuple[str, str], float]:
    """Supplier catalog prices keyed by (supplier_id, product_id)."""
    q = select(SupplierProduct.supplier_id, SupplierProduct.product_id, SupplierProduct.unit_cost)
    if supplier_ids is not None:
        q = q.where(SupplierProduct.supplier_id.in_(list(supplier_ids)))
    async with store_call("read supplier catalog"):
        result = await session.execute(q)
        return {(sid, pid): float(cost) for sid, pid, cost in result.all()}


def _terms(s: Supplier) -> SupplierTerms:
    return SupplierTerms(
        supplier_id=s.id,
        lead_time_days=s.lead_time_days,
        defect_rate=s.defect_rate,
        min_order_value=s.min_order_value,
        min_order_quantity=s.min_order_quantity,
    )


async def get_supplier_terms(
    session: AsyncSession,
    supplier_ids: Iterable[str] | None = None,
) -> dict[str, SupplierTerms]:
    q = select(Supplier)
    if supplier_ids is not None:
        q = q.where(Supplier.id.in_(list(supplier_ids)))
    async with store_call("read suppliers"):
        result = await session.execute(q)
        return {s.id: _terms(s) for s in result.scalars().all()}


async def get_supplier(session: AsyncSession, supplier_id: str) -> SupplierTerms | None:
    async with store_call("read supplier"):
        result = await session.execute(select(Supplier).where(Supplier.id == supplier_id))
        supplier = result.scalar_one_or_none()
    return _terms(supplier) if supplier else None


async def get_receipts(session: AsyncSession, supplier_id: str) -> list[ReceiptRecord]:
    """Received purchase orders of one supplier, oldest receipt first."""
    q = (
        select(PurchaseOrder)
        .where(PurchaseOrder.supplier_id == supplier_id)
        .where(PurchaseOrder.status == "received")
        .order_by(PurchaseOrder.received_at)
    )
    async with store_call("read supplier receipts"):
        result = await session.execute(q)
        orders = result.scalars().all()

    return [
        ReceiptRecord(
            order_id=po.id,
            sent_at=po.sent_at,
            received_at=po.received_at,
            expected_delivery_date=po.expected_delivery_date,
        )
        for po in orders
    ]
