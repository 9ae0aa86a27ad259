"""FastAPI application for the replenishment engine."""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import settings
from restock_engine.db.connection import async_session, engine
from restock_engine.db.models import Base
from restock_engine.errors import (
    BackingStoreError,
    ConcurrentModification,
    InvalidInput,
    InvalidTransition,
    NotFound,
    RuleValidationError,
)
from restock_engine.service.engine import ReplenishmentService

logger = logging.getLogger(__name__)

app = FastAPI(title="Restock Engine API", version="1.0.0")

# ---------------------------------------------------------------------------
# Include modular routers
# ---------------------------------------------------------------------------
from restock_engine.action.routers.analytics import router as analytics_router
from restock_engine.action.routers.purchase_orders import router as purchase_orders_router
from restock_engine.action.routers.rules import router as rules_router
from restock_engine.action.routers.suggestions import router as suggestions_router

app.include_router(rules_router)
app.include_router(suggestions_router)
app.include_router(purchase_orders_router)
app.include_router(analytics_router)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@app.on_event("startup")
async def _ensure_tables():
    """Create missing tables. Existing tables are left untouched."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")
    except Exception:
        logger.exception("Failed to ensure database schema")


@app.on_event("startup")
async def _start_service():
    """Build the replenishment service and start its suggestion loop."""
    service = ReplenishmentService(settings, async_session)
    app.state.service = service
    service.start()


@app.on_event("shutdown")
async def _stop_service():
    service = getattr(app.state, "service", None)
    if service is not None:
        await service.stop()


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


@app.exception_handler(InvalidInput)
@app.exception_handler(RuleValidationError)
async def _validation_error_handler(request: Request, exc):
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "errors": [e.as_dict() for e in exc.errors]},
    )


@app.exception_handler(InvalidTransition)
async def _invalid_transition_handler(request: Request, exc: InvalidTransition):
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "current_status": exc.current,
            "attempted_action": exc.attempted,
        },
    )


@app.exception_handler(ConcurrentModification)
async def _concurrent_modification_handler(request: Request, exc: ConcurrentModification):
    return JSONResponse(status_code=409, content={"detail": str(exc), "retryable": True})


@app.exception_handler(NotFound)
async def _not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(BackingStoreError)
async def _backing_store_handler(request: Request, exc: BackingStoreError):
    logger.warning("Backing store unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc), "retryable": True})


@app.exception_handler(Exception)
async def _global_error_handler(request: Request, exc: Exception):
    """Catch-all: ensure every unhandled error returns JSON, not raw HTML."""
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={
            "detail": f"Server error: {exc}",
            "error": str(exc),
            "status": "failed",
        },
    )


# CORS: lock down in production via CORS_ORIGINS env var (comma-separated).
_cors_origins = os.environ.get("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health() -> dict:
    service = getattr(app.state, "service", None)
    return {
        "status": "ok",
        "service_ready": service is not None,
        "auto_create_purchase_orders": settings.auto_create_purchase_orders,
    }
