from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class OrderLineCreate(BaseModel):
    product_id: int  # seller's product
    name: Optional[str] = None  # defaults to the seller's product name
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(Decimal("0"), ge=0)


class OrderCreate(BaseModel):
    distributor_id: int
    items: List[OrderLineCreate] = Field(..., min_length=1)
    remarks: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: str
    remark: Optional[str] = None
    otp: Optional[str] = None  # required for DELIVERED


class OrderAssignment(BaseModel):
    agent_id: Optional[str] = None  # null clears the assignment


class OrderItemOut(BaseModel):
    line_no: int
    product_id: int
    name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    class Config:
        from_attributes = True


class OrderEventOut(BaseModel):
    status: str
    remark: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: int
    order_number: Optional[str] = None
    pharmacy_id: int
    distributor_id: int
    status: str
    total_amount: Decimal
    remarks: Optional[str] = None
    assigned_to: Optional[str] = None
    delivered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    items: List[OrderItemOut] = []
    timeline: List[OrderEventOut] = []

    class Config:
        from_attributes = True


class BuyerOrderOut(OrderOut):
    """Buyer view: the pharmacy hands the OTP to the delivery agent on arrival."""
    delivery_otp: Optional[str] = None
