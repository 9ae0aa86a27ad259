"""Replenishment service — wires the planning functions to the backing store.

One ReplenishmentService is constructed at startup with its settings, a
session factory and a stock ledger, and handed to whoever needs it (the API
keeps it on app.state). It owns the request coalescer, the read retry
policy, the single-writer lock for purchase order creation and the
background suggestion loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from restock_engine.db.models import PurchaseOrder, PurchaseOrderLine, ReorderRule
from restock_engine.errors import NotFound
from restock_engine.planning.po_builder import (
    HeldOrder,
    PurchaseOrderInput,
    consolidate_suggestions,
    draft_purchase_order,
    exclude_covered,
)
from restock_engine.planning.records import RuleSpec
from restock_engine.planning.reorder_point import ReorderPointResult, compute_reorder_point, demand_stats
from restock_engine.planning.rule_filters import RuleCondition, filter_rules
from restock_engine.planning.stockout import StockoutProjection, project_stockout
from restock_engine.planning.suggestions import (
    ReorderSuggestion,
    UpcomingReorder,
    find_upcoming_reorders,
    generate_suggestions,
)
from restock_engine.planning.supplier_performance import SupplierPerformance, rank_suppliers, score_supplier
from restock_engine.service.coalescer import RequestCoalescer
from restock_engine.service.retry import WRITE_ONCE, call_with_retry, read_policy
from restock_engine.store import catalog_store, purchase_order_store, rule_store
from restock_engine.store.stock_ledger import SqlStockLedger, StockLedger

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PlanningInputs:
    """Everything the suggestion generator needs, read in one pass."""
    rules: list[RuleSpec]
    stock: dict
    mean_daily_demand: dict[str, float]
    unit_costs: dict[tuple[str, str], float]
    pack_sizes: dict[str, int | None]


@dataclass
class CycleResult:
    """Outcome of one suggestion + purchase order generation pass."""
    generated_at: datetime
    suggestions: list[ReorderSuggestion]
    orders: list[PurchaseOrder] = field(default_factory=list)
    held: list[HeldOrder] = field(default_factory=list)
    covered: list[ReorderSuggestion] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReplenishmentService:
    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: StockLedger | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings
        self.ledger = ledger or SqlStockLedger()
        self._session_factory = session_factory
        self._clock = clock
        self._read_policy = read_policy(settings.read_retry_attempts, settings.read_retry_base_delay)
        self._coalescer = RequestCoalescer()
        self._po_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Session helpers
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        return self._clock()

    async def _read(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run fn(session, ...) in a fresh session per attempt, with read retries."""
        async def attempt() -> T:
            async with self._session_factory() as session:
                return await fn(session, *args, **kwargs)

        attempt.__name__ = getattr(fn, "__name__", "read")
        return await call_with_retry(self._read_policy, attempt)

    async def _write(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run fn(session, ...) exactly once."""
        async def attempt() -> T:
            async with self._session_factory() as session:
                return await fn(session, *args, **kwargs)

        return await call_with_retry(WRITE_ONCE, attempt)

    # ------------------------------------------------------------------
    # Reorder rules
    # ------------------------------------------------------------------

    async def list_rules(
        self,
        product_id: str | None = None,
        supplier_id: str | None = None,
        active: bool | None = None,
    ) -> list[ReorderRule]:
        key = ("rules", product_id, supplier_id, active)
        return await self._coalescer.run(
            key, lambda: self._read(rule_store.list_rules, product_id, supplier_id, active)
        )

    async def search_rules(self, conditions: list[RuleCondition]) -> list[RuleSpec]:
        rows = await self.list_rules()
        return filter_rules([rule_store.to_spec(r) for r in rows], conditions)

    async def get_rule(self, rule_id: str) -> ReorderRule:
        row = await self._read(rule_store.get_rule, rule_id)
        if row is None:
            raise NotFound("Reorder rule", rule_id)
        return row

    async def create_rule(self, spec: RuleSpec) -> ReorderRule:
        return await self._write(rule_store.create_rule, spec)

    async def update_rule(self, rule_id: str, updates: dict[str, Any]) -> ReorderRule:
        return await self._write(rule_store.update_rule, rule_id, updates)

    async def toggle_rule(self, rule_id: str, is_active: bool) -> ReorderRule:
        return await self._write(rule_store.set_rule_active, rule_id, is_active)

    async def delete_rule(self, rule_id: str) -> bool:
        return await self._write(rule_store.delete_rule, rule_id)

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    async def _load_planning_inputs(self, session: AsyncSession) -> PlanningInputs:
        rows = await rule_store.list_rules(session, active=True)
        rules = [rule_store.to_spec(r) for r in rows]
        product_ids = sorted({r.product_id for r in rules})
        supplier_ids = sorted({r.supplier_id for r in rules})

        since = (self.now() - timedelta(days=self.settings.demand_window_days)).date()
        histories = await catalog_store.get_demand_histories(session, product_ids, since)

        return PlanningInputs(
            rules=rules,
            stock=await catalog_store.get_stock_snapshots(session, product_ids),
            mean_daily_demand={
                pid: demand_stats([p.units_sold for p in points]).mean
                for pid, points in histories.items()
            },
            unit_costs=await catalog_store.get_unit_costs(session, supplier_ids),
            pack_sizes=await catalog_store.get_pack_sizes(session, product_ids),
        )

    async def _compute_suggestions(self) -> list[ReorderSuggestion]:
        generated_at = self.now()
        inputs = await self._read(self._load_planning_inputs)
        suggestions = generate_suggestions(
            inputs.rules,
            inputs.stock,
            generated_at,
            mean_daily_demand=inputs.mean_daily_demand,
            unit_costs=inputs.unit_costs,
            pack_sizes=inputs.pack_sizes,
            ordering_cost=self.settings.default_ordering_cost,
            holding_cost_rate=self.settings.holding_cost_rate,
        )
        logger.info("Evaluated %d active rule(s): %d suggestion(s)", len(inputs.rules), len(suggestions))
        return suggestions

    async def refresh_suggestions(self) -> list[ReorderSuggestion]:
        """Current reorder suggestions; concurrent callers share one evaluation."""
        return await self._coalescer.run(("suggestions",), self._compute_suggestions)

    async def upcoming_reorders(self) -> list[UpcomingReorder]:
        rows = await self.list_rules(active=True)
        rules = [rule_store.to_spec(r) for r in rows]
        stock = await self._read(catalog_store.get_stock_snapshots, sorted({r.product_id for r in rules}))
        return find_upcoming_reorders(rules, stock, self.settings.upcoming_margin)

    # ------------------------------------------------------------------
    # Purchase orders
    # ------------------------------------------------------------------

    async def _create_order(self, order: PurchaseOrderInput) -> PurchaseOrder:
        supplier = await self._read(catalog_store.get_supplier, order.supplier_id)
        if supplier is None:
            raise NotFound("Supplier", order.supplier_id)
        draft = draft_purchase_order(
            order,
            self.now(),
            lead_time_days=supplier.lead_time_days,
            default_lead_time_days=self.settings.default_lead_time_days,
        )
        return await self._write(purchase_order_store.create_purchase_order, draft)

    async def create_purchase_order(self, order: PurchaseOrderInput) -> PurchaseOrder:
        """Create one draft order from an explicit request."""
        async with self._po_lock:
            return await self._create_order(order)

    async def build_purchase_orders(self, suggestions: list[ReorderSuggestion]) -> CycleResult:
        """Consolidate suggestions per supplier and persist one draft order each.

        Suggestions for a (supplier, product) pair that already has a draft or
        sent order are skipped and reported as covered. The open-order read
        and the creations run under the single-writer lock.
        """
        result = CycleResult(generated_at=self.now(), suggestions=suggestions)
        if not suggestions:
            return result

        supplier_ids = sorted({s.supplier_id for s in suggestions})
        async with self._po_lock:
            open_quantities = await self._read(purchase_order_store.get_open_order_quantities, supplier_ids)
            pending, result.covered = exclude_covered(suggestions, open_quantities)
            if result.covered:
                logger.info("Skipped %d suggestion(s) already on open orders", len(result.covered))
            if not pending:
                return result

            supplier_ids = sorted({s.supplier_id for s in pending})
            unit_costs = await self._read(catalog_store.get_unit_costs, supplier_ids)
            terms = await self._read(catalog_store.get_supplier_terms, supplier_ids)
            consolidated = consolidate_suggestions(pending, unit_costs, terms)

            for held in consolidated.held:
                logger.warning("Held order for supplier %s: %s", held.supplier_id, held.reason)
            result.held = consolidated.held

            for order in consolidated.orders:
                result.orders.append(await self._create_order(order))
        return result

    async def get_purchase_order(self, order_id: str) -> tuple[PurchaseOrder, list[PurchaseOrderLine]]:
        po = await self._read(purchase_order_store.get_purchase_order, order_id)
        if po is None:
            raise NotFound("Purchase order", order_id)
        lines = await self._read(purchase_order_store.get_lines, order_id)
        return po, lines

    async def list_purchase_orders(
        self, status: str | None = None, supplier_id: str | None = None, limit: int = 100,
    ) -> list[PurchaseOrder]:
        return await self._read(purchase_order_store.list_purchase_orders, status, supplier_id, limit)

    async def approve(self, order_id: str) -> PurchaseOrder:
        return await self._write(purchase_order_store.approve, order_id, self.now())

    async def cancel(self, order_id: str) -> PurchaseOrder:
        return await self._write(purchase_order_store.cancel, order_id, self.now())

    async def receive(self, order_id: str) -> PurchaseOrder:
        return await self._write(purchase_order_store.receive, order_id, self.now(), self.ledger)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def supplier_performance(self, supplier_id: str) -> SupplierPerformance:
        supplier = await self._read(catalog_store.get_supplier, supplier_id)
        if supplier is None:
            raise NotFound("Supplier", supplier_id)
        receipts = await self._read(catalog_store.get_receipts, supplier_id)
        return score_supplier(
            supplier_id, receipts, supplier.defect_rate, min_orders=self.settings.supplier_min_orders,
        )

    async def all_supplier_performance(self) -> list[SupplierPerformance]:
        terms = await self._read(catalog_store.get_supplier_terms)
        reports = []
        for supplier_id, t in terms.items():
            receipts = await self._read(catalog_store.get_receipts, supplier_id)
            reports.append(score_supplier(
                supplier_id, receipts, t.defect_rate, min_orders=self.settings.supplier_min_orders,
            ))
        return rank_suppliers(reports)

    async def _history_for(self, product_id: str):
        since = (self.now() - timedelta(days=self.settings.demand_window_days)).date()
        return await self._read(catalog_store.get_demand_history, product_id, since)

    async def reorder_point_for(
        self,
        product_id: str,
        lead_time_days: int | None = None,
        service_level: float | None = None,
    ) -> ReorderPointResult:
        """Reorder point from the product's recent demand.

        Lead time falls back to the product's supplier, then to the default.
        """
        product = await self._read(catalog_store.get_product, product_id)
        if product is None:
            raise NotFound("Product", product_id)

        if lead_time_days is None and product.supplier_id:
            supplier = await self._read(catalog_store.get_supplier, product.supplier_id)
            if supplier is not None:
                lead_time_days = supplier.lead_time_days
        if lead_time_days is None:
            lead_time_days = self.settings.default_lead_time_days

        history = await self._history_for(product_id)
        return compute_reorder_point(
            history, lead_time_days, service_level or self.settings.default_service_level,
        )

    async def stockout_for(self, product_id: str) -> StockoutProjection:
        product = await self._read(catalog_store.get_product, product_id)
        if product is None:
            raise NotFound("Product", product_id)
        history = await self._history_for(product_id)
        return project_stockout(product_id, int(product.current_stock or 0), history)

    # ------------------------------------------------------------------
    # Cycle + background loop
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CycleResult:
        """Refresh suggestions; with auto-create on, draft orders for auto_generate rules."""
        suggestions = await self.refresh_suggestions()
        if not self.settings.auto_create_purchase_orders:
            return CycleResult(generated_at=self.now(), suggestions=suggestions)

        rows = await self.list_rules(active=True)
        auto_ids = {r.id for r in rows if r.auto_generate}
        auto = [s for s in suggestions if s.rule_id in auto_ids]
        result = await self.build_purchase_orders(auto)
        result.suggestions = suggestions
        return result

    async def _loop(self) -> None:
        interval = self.settings.suggestion_interval_seconds
        while True:
            try:
                result = await self.run_cycle()
                if result.orders or result.held or result.covered:
                    logger.info(
                        "Replenishment cycle: %d order(s) drafted, %d held, %d already on order",
                        len(result.orders), len(result.held), len(result.covered),
                    )
            except Exception:
                logger.exception("Replenishment cycle failed")
            await asyncio.sleep(interval)

    def start(self) -> None:
        if self.settings.suggestion_interval_seconds <= 0:
            logger.info("Suggestion loop disabled")
            return
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self._loop())
            logger.info("Suggestion loop started (every %ds)", self.settings.suggestion_interval_seconds)

    async def stop(self) -> None:
        if self._loop_task and not self._loop_task.done():
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
        self._loop_task = None
        logger.info("Suggestion loop stopped")
