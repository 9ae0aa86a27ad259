"""Shared dependencies for API routers."""

import logging

from fastapi import HTTPException, Request

from restock_engine.service.engine import ReplenishmentService

logger = logging.getLogger(__name__)


def get_service(request: Request) -> ReplenishmentService:
    """The ReplenishmentService built at startup."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        logger.error("Replenishment service requested before startup completed")
        raise HTTPException(status_code=503, detail="Service is starting up")
    return service
