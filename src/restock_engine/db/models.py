"""ORM models for catalog inputs, reorder rules and purchase orders."""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Consumed contracts (owned by the catalog / supplier directory / demand ledger)
# ---------------------------------------------------------------------------


class Product(Base):
    """Catalog product. current_stock is the stock ledger's authoritative figure."""

    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=True)
    pack_size = Column(Integer, nullable=True)  # None/1 = no pack constraint
    current_stock = Column(Integer, nullable=False, default=0)
    stock_updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Supplier(Base):
    """Supplier directory entry."""

    __tablename__ = "suppliers"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    lead_time_days = Column(Integer, nullable=True)
    defect_rate = Column(Float, nullable=True)  # 0..1, sourced from QA
    min_order_value = Column(Float, nullable=True)
    min_order_quantity = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True)


class SupplierProduct(Base):
    """Supplier catalog price for one product."""

    __tablename__ = "supplier_products"
    __table_args__ = (UniqueConstraint("supplier_id", "product_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=False)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    unit_cost = Column(Float, nullable=False)


class DemandRecord(Base):
    """Units sold for a product in one period (append-only)."""

    __tablename__ = "demand_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    units_sold = Column(Float, nullable=False, default=0)


# ---------------------------------------------------------------------------
# Owned records
# ---------------------------------------------------------------------------


class ReorderRule(Base):
    """Operator-maintained reorder thresholds for a product/supplier pair."""

    __tablename__ = "reorder_rules"

    id = Column(String(36), primary_key=True, default=_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=False, index=True)
    reorder_point = Column(Integer, nullable=False)
    reorder_quantity = Column(Integer, nullable=False)
    min_stock = Column(Integer, nullable=False, default=0)
    max_stock = Column(Integer, nullable=True)  # None = unbounded
    lead_time_days = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    auto_generate = Column(Boolean, nullable=False, default=False)
    last_triggered_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class PurchaseOrder(Base):
    """Purchase order header. status moves only through the lifecycle manager."""

    __tablename__ = "purchase_orders"

    id = Column(String(36), primary_key=True, default=_uuid)
    po_number = Column(String(50), nullable=False, unique=True)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="draft")  # draft/sent/received/cancelled
    total_cost = Column(Float, nullable=False, default=0.0)
    notes = Column(Text, nullable=True)
    expected_delivery_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    sent_at = Column(DateTime(timezone=True), nullable=True)
    received_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)  # bumped on every transition


class PurchaseOrderLine(Base):
    """One product line of a purchase order."""

    __tablename__ = "purchase_order_lines"

    id = Column(Integer, primary_key=True, autoincrement=True)
    purchase_order_id = Column(
        String(36), ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Float, nullable=False)
    line_total = Column(Float, nullable=False)
