"""
Notification requests written by the core inside the same transaction as
the change they describe. Delivery (push, email, sockets) is external.
"""
import enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Text

from pharmaledger.core.clock import utcnow
from pharmaledger.db.base import Base


class NotificationType(str, enum.Enum):
    ORDER_REQ = "ORDER_REQ"
    ORDER_UPDATE = "ORDER_UPDATE"
    CONNECTION_REQ = "CONNECTION_REQ"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(32), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=True)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
