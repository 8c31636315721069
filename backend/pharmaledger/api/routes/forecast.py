"""Read-only analytics over the calling tenant's ledger."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pharmaledger.api.deps import get_current_tenant, get_db
from pharmaledger.models.tenant import Tenant
from pharmaledger.schemas.forecast import DemandForecastOut, ExpiryRiskOut
from pharmaledger.services.demand_forecast import demand_forecast
from pharmaledger.services.expiry_risk import expiry_risk

router = APIRouter()


@router.get("/demand", response_model=List[DemandForecastOut])
def get_demand_forecast(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    return demand_forecast(db, tenant.id)


@router.get("/expiry-risk", response_model=ExpiryRiskOut)
def get_expiry_risk(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    return expiry_risk(db, tenant.id)
