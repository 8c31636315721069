"""
Cross-tenant B2B order between a pharmacy (buyer) and a distributor (seller).

Status flow: PENDING -> ACCEPTED -> PACKED -> SHIPPED -> DELIVERED, or
PENDING -> REJECTED. The order is mutated only through order_service; the
timeline is append-only.
"""
import enum

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Text
from sqlalchemy.orm import relationship

from pharmaledger.core.clock import utcnow
from pharmaledger.db.base import Base


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    PACKED = "PACKED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"


class TimelineEvent(str, enum.Enum):
    """Timeline markers that are not statuses."""
    ASSIGNED = "ASSIGNED"
    UNASSIGNED = "UNASSIGNED"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), unique=True, nullable=True)  # PO-2026-00001, set after insert
    pharmacy_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    distributor_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(16), nullable=False, default=OrderStatus.PENDING.value, index=True)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    remarks = Column(Text, nullable=True)
    delivery_otp = Column(String(6), nullable=True)  # set at ACCEPTED, consumed at DELIVERED
    delivered_at = Column(DateTime, nullable=True)
    assigned_to = Column(String(64), nullable=True)  # delivery agent identity, opaque
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.line_no",
                         cascade="all, delete-orphan")
    timeline = relationship("OrderEvent", back_populates="order", order_by="OrderEvent.id",
                            cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Order id={self.id} number={self.order_number} status={self.status}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    line_no = Column(Integer, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)  # seller's product
    name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)  # agreed price at time of order
    total_price = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")


class OrderEvent(Base):
    """One timeline entry. Never updated or deleted once written."""
    __tablename__ = "order_events"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(16), nullable=False)  # OrderStatus or ASSIGNED/UNASSIGNED
    remark = Column(Text, nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow)

    order = relationship("Order", back_populates="timeline")
