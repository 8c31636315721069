"""Counter sales. Stock is drawn FIFO from the tenant's batches."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pharmaledger.api.deps import get_current_tenant, get_db
from pharmaledger.models.tenant import Tenant
from pharmaledger.schemas.sales import SaleCreate, SaleOut
from pharmaledger.services.sales_service import record_sale

router = APIRouter()


@router.post("", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
def create_sale(
    data: SaleCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    return record_sale(db, tenant.id, data.items, customer_name=data.customer_name)
