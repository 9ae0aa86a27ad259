"""Purchase order routes: creation, consolidation and lifecycle."""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from restock_engine.action.dependencies import get_service
from restock_engine.db.models import PurchaseOrder, PurchaseOrderLine
from restock_engine.planning.po_builder import LineItem, PurchaseOrderInput
from restock_engine.planning.po_lifecycle import allowed_actions
from restock_engine.service.engine import ReplenishmentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["purchase-orders"])


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------


class LineItemRequest(BaseModel):
    product_id: str
    quantity: int
    unit_cost: float


class PurchaseOrderCreateRequest(BaseModel):
    supplier_id: str
    line_items: list[LineItemRequest]
    notes: Optional[str] = None


class FromSuggestionsRequest(BaseModel):
    product_ids: Optional[list[str]] = None  # restrict to these products
    supplier_ids: Optional[list[str]] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def order_to_dict(po: PurchaseOrder, lines: Optional[list[PurchaseOrderLine]] = None) -> dict:
    data = {
        "id": po.id,
        "po_number": po.po_number,
        "supplier_id": po.supplier_id,
        "status": po.status,
        "total_cost": po.total_cost,
        "notes": po.notes,
        "expected_delivery_date": _iso(po.expected_delivery_date),
        "created_at": _iso(po.created_at),
        "sent_at": _iso(po.sent_at),
        "received_at": _iso(po.received_at),
        "cancelled_at": _iso(po.cancelled_at),
        "version": po.version,
        "allowed_actions": allowed_actions(po.status),
    }
    if lines is not None:
        data["line_items"] = [
            {
                "product_id": li.product_id,
                "quantity": li.quantity,
                "unit_cost": li.unit_cost,
                "line_total": li.line_total,
            }
            for li in lines
        ]
    return data


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/purchase-orders", status_code=201)
async def create_purchase_order(
    req: PurchaseOrderCreateRequest,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    """Create a draft purchase order from explicit line items."""
    order = PurchaseOrderInput(
        supplier_id=req.supplier_id,
        line_items=[LineItem(li.product_id, li.quantity, li.unit_cost) for li in req.line_items],
        notes=req.notes,
    )
    po = await service.create_purchase_order(order)
    return order_to_dict(po)


@router.post("/purchase-orders/from-suggestions", status_code=201)
async def create_from_suggestions(
    req: Optional[FromSuggestionsRequest] = None,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    """Consolidate current suggestions into one draft order per supplier.

    Products already on a draft or sent order with the same supplier are
    reported under "covered" instead of being ordered again.
    """
    suggestions = await service.refresh_suggestions()
    if req and req.product_ids is not None:
        suggestions = [s for s in suggestions if s.product_id in set(req.product_ids)]
    if req and req.supplier_ids is not None:
        suggestions = [s for s in suggestions if s.supplier_id in set(req.supplier_ids)]

    result = await service.build_purchase_orders(suggestions)
    return {
        "suggestions_used": len(suggestions),
        "orders": [order_to_dict(po) for po in result.orders],
        "held": [asdict(h) for h in result.held],
        "covered": [{"product_id": s.product_id, "supplier_id": s.supplier_id} for s in result.covered],
    }


@router.get("/purchase-orders")
async def list_purchase_orders(
    status: Optional[str] = None,
    supplier_id: Optional[str] = None,
    limit: int = 100,
    service: ReplenishmentService = Depends(get_service),
) -> list[dict]:
    orders = await service.list_purchase_orders(status, supplier_id, min(max(limit, 1), 500))
    return [order_to_dict(po) for po in orders]


@router.get("/purchase-orders/{order_id}")
async def get_purchase_order(
    order_id: str,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    po, lines = await service.get_purchase_order(order_id)
    return order_to_dict(po, lines)


@router.post("/purchase-orders/{order_id}/approve")
async def approve_purchase_order(
    order_id: str,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    """draft -> sent."""
    return order_to_dict(await service.approve(order_id))


@router.post("/purchase-orders/{order_id}/cancel")
async def cancel_purchase_order(
    order_id: str,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    return order_to_dict(await service.cancel(order_id))


@router.post("/purchase-orders/{order_id}/receive")
async def receive_purchase_order(
    order_id: str,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    """sent -> received; on-hand stock is increased by every line quantity."""
    return order_to_dict(await service.receive(order_id))
