"""
Tenants and the pharmacy-distributor connection directory.

A tenant is an opaque identity boundary: it owns its own products and
batches and never shares storage with another tenant. Provisioning happens
outside this service; rows are only read here (and created by seed/tests).
"""
import enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship

from pharmaledger.core.clock import utcnow
from pharmaledger.db.base import Base


class TenantRole(str, enum.Enum):
    PHARMACY = "PHARMACY"
    DISTRIBUTOR = "DISTRIBUTOR"


class ConnectionStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False)  # PHARMACY | DISTRIBUTOR
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<Tenant id={self.id} role={self.role} name={self.name!r}>"


class Connection(Base):
    """Approved link required before a pharmacy may order from a distributor."""
    __tablename__ = "connections"
    __table_args__ = (
        UniqueConstraint("pharmacy_id", "distributor_id", name="uq_connection_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    pharmacy_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    distributor_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(32), nullable=False, default=ConnectionStatus.PENDING.value)
    requested_at = Column(DateTime, default=utcnow)
    responded_at = Column(DateTime, nullable=True)

    pharmacy = relationship("Tenant", foreign_keys=[pharmacy_id])
    distributor = relationship("Tenant", foreign_keys=[distributor_id])
