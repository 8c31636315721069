from sqlalchemy import Column, Integer, String, ForeignKey, Float, Boolean, DateTime
from sqlalchemy.types import JSON

from pharmaledger.core.clock import utcnow
from pharmaledger.db.base import Base


class Trend(Base):
    """Demand boost rule, e.g. "Dengue Outbreak" boosting Antipyretics by 1.5x."""
    __tablename__ = "trends"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    affected_categories = Column(JSON, nullable=False, default=list)
    boost_factor = Column(Float, nullable=False, default=1.2)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
