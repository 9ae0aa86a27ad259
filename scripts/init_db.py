"""Create the replenishment tables, optionally loading a small demo catalog."""

import argparse
import asyncio
from datetime import date, timedelta

from restock_engine.db.connection import async_session, engine
from restock_engine.db.models import Base, DemandRecord, Product, ReorderRule, Supplier, SupplierProduct


async def _seed() -> None:
    async with async_session() as session:
        supplier = Supplier(name="Acme Wholesale", lead_time_days=5, defect_rate=0.02)
        session.add(supplier)
        await session.flush()

        product = Product(name="Widget", supplier_id=supplier.id, pack_size=10, current_stock=50)
        session.add(product)
        await session.flush()

        session.add(SupplierProduct(supplier_id=supplier.id, product_id=product.id, unit_cost=4.0))
        today = date.today()
        for i, units in enumerate([10, 12, 9, 11]):
            session.add(DemandRecord(product_id=product.id, date=today - timedelta(days=4 - i), units_sold=units))
        session.add(ReorderRule(
            product_id=product.id,
            supplier_id=supplier.id,
            reorder_point=58,
            reorder_quantity=100,
            min_stock=10,
            lead_time_days=5,
        ))
        await session.commit()


async def init(seed: bool = False) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("[init_db] Tables created successfully.")
    if seed:
        await _seed()
        print("[init_db] Demo catalog loaded.")
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", action="store_true", help="load a demo supplier, product and rule")
    args = parser.parse_args()
    asyncio.run(init(seed=args.seed))
