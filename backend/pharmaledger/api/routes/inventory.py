"""Inventory: products, batches, stock and demand trends of the calling tenant."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pharmaledger.api.deps import get_current_tenant, get_db
from pharmaledger.db.unit_of_work import unit_of_work
from pharmaledger.models.tenant import Tenant
from pharmaledger.schemas.inventory import (
    BatchCreate, BatchOut, ProductCreate, ProductOut, ProductStockOut, StockOut, TrendCreate, TrendOut,
)
from pharmaledger.services import ledger_service, trend_service

router = APIRouter()


@router.get("/products", response_model=List[ProductStockOut])
def list_products(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    """Catalogue with total stock per product."""
    rows = ledger_service.list_products_with_stock(db, tenant.id, search)
    return [
        ProductStockOut(**ProductOut.model_validate(product).model_dump(), total_stock=stock)
        for product, stock in rows
    ]


@router.post("/products", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    with unit_of_work(db):
        product = ledger_service.create_product(db, tenant.id, **data.model_dump())
    return product


@router.get("/products/{product_id}/stock", response_model=StockOut)
def get_stock(
    product_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    return StockOut(product_id=product_id, total_stock=ledger_service.total_stock(db, tenant.id, product_id))


@router.get("/products/{product_id}/batches", response_model=List[BatchOut])
def list_batches(
    product_id: int,
    include_empty: bool = Query(False),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    """Batches soonest-expiry first. Empty batches are kept for history and shown on request."""
    return ledger_service.batches_for(db, tenant.id, product_id, only_positive=not include_empty)


@router.post("/products/{product_id}/batches", response_model=BatchOut, status_code=status.HTTP_201_CREATED)
def create_batch(
    product_id: int,
    data: BatchCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    with unit_of_work(db):
        batch = ledger_service.create_batch(db, tenant.id, product_id, **data.model_dump())
    return batch


@router.get("/trends", response_model=List[TrendOut])
def list_trends(
    include_archived: bool = Query(False),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    return trend_service.list_trends(db, tenant.id, active_only=not include_archived)


@router.post("/trends", response_model=TrendOut, status_code=status.HTTP_201_CREATED)
def create_trend(
    data: TrendCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    return trend_service.create_trend(db, tenant.id, data.name, data.affected_categories, data.boost_factor)


@router.post("/trends/{trend_id}/archive", response_model=TrendOut)
def archive_trend(
    trend_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    return trend_service.archive_trend(db, tenant.id, trend_id)
