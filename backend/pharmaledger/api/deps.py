"""FastAPI dependencies: DB session and calling tenant.

Identity is supplied, not verified: the gateway in front of this service
authenticates the user and forwards the tenant id in the X-Tenant-Id header.
"""
from typing import Generator, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from pharmaledger.core.exceptions import BusinessError
from pharmaledger.db.session import SessionLocal
from pharmaledger.models.tenant import Tenant, TenantRole


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_tenant(
    x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-Id"),
    db: Session = Depends(get_db),
) -> Tenant:
    """Load the calling tenant from the X-Tenant-Id header."""
    if not x_tenant_id:
        raise BusinessError.bad_request("X-Tenant-Id header is required")
    try:
        tenant_id = int(x_tenant_id)
    except ValueError:
        raise BusinessError.bad_request("X-Tenant-Id must be an integer")

    tenant = db.get(Tenant, tenant_id)
    if not tenant:
        raise BusinessError.not_found("Tenant", reason=f"unknown tenant id {tenant_id}")
    return tenant


def get_current_distributor(tenant: Tenant = Depends(get_current_tenant)) -> Tenant:
    if tenant.role != TenantRole.DISTRIBUTOR.value:
        raise BusinessError.forbidden(f"tenant {tenant.id} is not a distributor")
    return tenant


def get_current_pharmacy(tenant: Tenant = Depends(get_current_tenant)) -> Tenant:
    if tenant.role != TenantRole.PHARMACY.value:
        raise BusinessError.forbidden(f"tenant {tenant.id} is not a pharmacy")
    return tenant
