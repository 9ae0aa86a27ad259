"""Supplier, product and planning analytics routes."""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from restock_engine.action.dependencies import get_service
from restock_engine.errors import InvalidInput
from restock_engine.planning.eoq import (
    DiscountTier,
    annualize_demand,
    compute_eoq,
    compute_eoq_with_discounts,
    estimate_holding_cost,
)
from restock_engine.planning.stockout import (
    days_inventory_on_hand,
    fill_rate,
    inventory_turnover,
    stockout_frequency,
)
from restock_engine.service.engine import ReplenishmentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analytics"])


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------


class DiscountTierRequest(BaseModel):
    min_quantity: int
    unit_cost: float


class EOQRequest(BaseModel):
    annual_demand: Optional[float] = None
    mean_daily_demand: Optional[float] = None  # used when annual_demand is omitted
    ordering_cost: Optional[float] = None
    holding_cost: Optional[float] = None
    unit_cost: Optional[float] = None  # holding cost derived from it when holding_cost is omitted
    holding_cost_rate: Optional[float] = None
    pack_size: Optional[int] = None
    discount_tiers: list[DiscountTierRequest] = []


class InventoryMetricsRequest(BaseModel):
    cost_of_goods_sold: Optional[float] = None
    average_inventory_value: Optional[float] = None
    average_inventory: Optional[float] = None  # units
    average_daily_demand: Optional[float] = None
    demand_met: Optional[float] = None
    total_demand: Optional[float] = None
    stockout_days: Optional[int] = None
    total_days: Optional[int] = None


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------


@router.get("/suppliers/performance")
async def rank_supplier_performance(service: ReplenishmentService = Depends(get_service)) -> dict:
    """All suppliers, best score first."""
    reports = await service.all_supplier_performance()
    return {"count": len(reports), "suppliers": [asdict(r) for r in reports]}


@router.get("/suppliers/{supplier_id}/performance")
async def supplier_performance(
    supplier_id: str,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    return asdict(await service.supplier_performance(supplier_id))


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


@router.get("/products/{product_id}/stockout")
async def product_stockout(
    product_id: str,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    return asdict(await service.stockout_for(product_id))


@router.get("/products/{product_id}/reorder-point")
async def product_reorder_point(
    product_id: str,
    lead_time_days: Optional[int] = None,
    service_level: Optional[float] = None,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    result = await service.reorder_point_for(product_id, lead_time_days, service_level)
    return {"product_id": product_id, **asdict(result)}


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


@router.post("/planning/eoq")
async def plan_eoq(
    req: EOQRequest,
    service: ReplenishmentService = Depends(get_service),
) -> dict:
    """Economic order quantity, optionally with supplier price breaks."""
    if req.annual_demand is not None:
        annual_demand = req.annual_demand
    elif req.mean_daily_demand is not None:
        annual_demand = annualize_demand(req.mean_daily_demand)
    else:
        raise InvalidInput("annual_demand", "is required (or mean_daily_demand)")

    if req.holding_cost is not None:
        holding_cost = req.holding_cost
    elif req.unit_cost is not None:
        rate = req.holding_cost_rate if req.holding_cost_rate is not None else service.settings.holding_cost_rate
        holding_cost = estimate_holding_cost(req.unit_cost, rate)
    else:
        raise InvalidInput("holding_cost", "is required (or unit_cost)")

    ordering_cost = req.ordering_cost if req.ordering_cost is not None else service.settings.default_ordering_cost

    result = compute_eoq(annual_demand, ordering_cost, holding_cost, req.pack_size)
    response = {
        "annual_demand": annual_demand,
        "ordering_cost": ordering_cost,
        "holding_cost": holding_cost,
        **asdict(result),
    }

    if req.discount_tiers:
        if req.unit_cost is None:
            raise InvalidInput("unit_cost", "is required when discount_tiers are given")
        best = compute_eoq_with_discounts(
            annual_demand,
            ordering_cost,
            holding_cost,
            req.unit_cost,
            [DiscountTier(t.min_quantity, t.unit_cost) for t in req.discount_tiers],
            req.pack_size,
        )
        response["best_option"] = asdict(best)

    return response


@router.post("/planning/inventory-metrics")
async def plan_inventory_metrics(req: InventoryMetricsRequest) -> dict:
    """Period inventory ratios; each is computed only when both of its inputs are given."""
    metrics: dict = {}
    if req.cost_of_goods_sold is not None and req.average_inventory_value is not None:
        metrics["inventory_turnover"] = inventory_turnover(req.cost_of_goods_sold, req.average_inventory_value)
    if req.average_inventory is not None and req.average_daily_demand is not None:
        metrics["days_inventory_on_hand"] = days_inventory_on_hand(req.average_inventory, req.average_daily_demand)
    if req.demand_met is not None and req.total_demand is not None:
        metrics["fill_rate"] = fill_rate(req.demand_met, req.total_demand)
    if req.stockout_days is not None and req.total_days is not None:
        metrics["stockout_frequency"] = stockout_frequency(req.stockout_days, req.total_days)

    if not metrics:
        raise InvalidInput("metrics", "provide at least one complete pair of inputs")
    return metrics
