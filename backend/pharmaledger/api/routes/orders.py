"""
B2B orders between a pharmacy (buyer) and a distributor (seller).

The buyer places orders and is the only party that ever sees the delivery
OTP. The seller drives the status and the delivery-agent assignment.
"""
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pharmaledger.api.deps import get_current_pharmacy, get_current_tenant, get_db
from pharmaledger.core.exceptions import BusinessError
from pharmaledger.models.order import Order
from pharmaledger.models.tenant import Tenant
from pharmaledger.schemas.orders import (
    BuyerOrderOut, OrderAssignment, OrderCreate, OrderOut, OrderStatusUpdate,
)
from pharmaledger.services import order_service

router = APIRouter()


def _present(order: Order, tenant: Tenant) -> Union[OrderOut, BuyerOrderOut]:
    if tenant.id == order.pharmacy_id:
        return BuyerOrderOut.model_validate(order)
    return OrderOut.model_validate(order)


@router.post("", response_model=BuyerOrderOut, status_code=status.HTTP_201_CREATED)
def place_order(
    data: OrderCreate,
    db: Session = Depends(get_db),
    pharmacy: Tenant = Depends(get_current_pharmacy),
):
    order = order_service.place_order(db, pharmacy.id, data.distributor_id, data.items, data.remarks)
    return _present(order, pharmacy)


@router.get("", response_model=None)
def list_orders(
    role: Optional[str] = Query(None, pattern="^(buyer|seller)$"),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> List[Union[BuyerOrderOut, OrderOut]]:
    return [_present(o, tenant) for o in order_service.list_orders(db, tenant.id, role)]


@router.get("/{order_id}", response_model=None)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Union[BuyerOrderOut, OrderOut]:
    return _present(order_service.get_order(db, order_id, tenant.id), tenant)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: int,
    data: OrderStatusUpdate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    """Seller moves the order along; DELIVERED needs the OTP the pharmacy received."""
    if not data.status:
        raise BusinessError.bad_request("status is required")
    return order_service.transition_order(
        db,
        order_id,
        data.status.strip().upper(),
        remark=data.remark,
        otp=data.otp,
        actor_tenant_id=tenant.id,
    )


@router.patch("/{order_id}/assignment", response_model=OrderOut)
def update_assignment(
    order_id: int,
    data: OrderAssignment,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    return order_service.assign_agent(db, order_id, data.agent_id, actor_tenant_id=tenant.id)
