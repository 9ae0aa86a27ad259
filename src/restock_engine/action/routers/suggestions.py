"""Reorder suggestion routes."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends

from restock_engine.action.dependencies import get_service
from restock_engine.service.engine import ReplenishmentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reorder-suggestions"])


@router.get("/reorder-suggestions")
async def list_suggestions(service: ReplenishmentService = Depends(get_service)) -> dict:
    """Evaluate active rules against current stock. Nothing is persisted."""
    suggestions = await service.refresh_suggestions()
    return {
        "count": len(suggestions),
        "suggestions": [asdict(s) for s in suggestions],
    }


@router.get("/reorder-suggestions/upcoming")
async def list_upcoming(service: ReplenishmentService = Depends(get_service)) -> dict:
    """Rules whose stock is close to, but still above, the reorder point."""
    upcoming = await service.upcoming_reorders()
    return {
        "count": len(upcoming),
        "margin": service.settings.upcoming_margin,
        "upcoming": [asdict(u) for u in upcoming],
    }
