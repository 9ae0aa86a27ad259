"""Stock ledger adapter: the only path by which the engine changes stock."""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from restock_engine.db.models import Product
from restock_engine.errors import NotFound

logger = logging.getLogger(__name__)


class StockLedger(Protocol):
    async def increase(self, session: AsyncSession, product_id: str, quantity: int) -> None:
        """Add quantity to the product's on-hand stock within the caller's transaction."""


class SqlStockLedger:
    """Stock ledger backed by products.current_stock.

    Increments are relative (current_stock = current_stock + n) so concurrent
    sales decrements are not lost. Does not commit.
    """

    async def increase(self, session: AsyncSession, product_id: str, quantity: int) -> None:
        if quantity <= 0:
            return
        result = await session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(current_stock=Product.current_stock + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFound("Product", product_id)
        logger.debug("Stock for %s increased by %d", product_id, quantity)
