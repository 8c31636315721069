"""
Batch-based inventory ledger.

A Product is a tenant's catalogue entry; a Batch is a dated lot of that
product with its own expiry, cost and remaining quantity. Batches are the
unit of FIFO allocation. Stock is never stored on the product: it is always
the sum of its batch quantities.
"""
import enum

from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer,
    Numeric, String, Text, UniqueConstraint, text,
)
from sqlalchemy.orm import relationship

from pharmaledger.core.clock import utcnow
from pharmaledger.db.base import Base


class Seasonality(str, enum.Enum):
    SUMMER = "Summer"
    MONSOON = "Monsoon"
    WINTER = "Winter"
    ALL_YEAR = "All Year"


# Absent SKUs are stored as NULL and never take part in uniqueness
_SKU_PRESENT = text("sku IS NOT NULL AND sku <> ''")


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        Index(
            "uq_products_tenant_sku",
            "tenant_id",
            "sku",
            unique=True,
            sqlite_where=_SKU_PRESENT,
            postgresql_where=_SKU_PRESENT,
        ),
        Index("ix_products_tenant_name_key", "tenant_id", "name_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    name_key = Column(String(255), nullable=False)  # see services.names.normalize_name
    sku = Column(String(64), nullable=True)
    description = Column(Text, nullable=True)
    category = Column(String(128), nullable=True)
    manufacturer = Column(String(255), nullable=True)
    unit = Column(String(32), nullable=False, default="strip")  # strip, bottle, tablet
    min_stock_level = Column(Integer, nullable=False, default=10)
    gst_rate = Column(Numeric(5, 2), nullable=False, default=0)  # 0, 5, 12, 18, 28
    seasonality = Column(String(16), nullable=False, default=Seasonality.ALL_YEAR.value)
    is_prescription_required = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    batches = relationship("Batch", back_populates="product", order_by="Batch.expiry_date")

    def __repr__(self):
        return f"<Product id={self.id} tenant={self.tenant_id} name={self.name!r}>"


class Batch(Base):
    __tablename__ = "batches"
    __table_args__ = (
        UniqueConstraint("tenant_id", "product_id", "batch_number", name="uq_batches_tenant_product_number"),
        CheckConstraint("quantity >= 0", name="ck_batches_quantity_non_negative"),
        Index("ix_batches_tenant_product_expiry", "tenant_id", "product_id", "expiry_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    batch_number = Column(String(64), nullable=False)
    expiry_date = Column(Date, nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    mrp = Column(Numeric(10, 2), nullable=False)  # sale price ceiling
    purchase_rate = Column(Numeric(10, 2), nullable=False)  # cost basis
    supplier_id = Column(Integer, ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True)
    rack_location = Column(String(64), nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    product = relationship("Product", back_populates="batches")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Batch id={self.id} product={self.product_id} qty={self.quantity} exp={self.expiry_date}>"
