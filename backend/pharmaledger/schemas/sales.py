from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class SaleLineCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)
    unit_price: Optional[Decimal] = Field(None, ge=0)  # defaults to the batch MRP


class SaleCreate(BaseModel):
    items: List[SaleLineCreate] = Field(..., min_length=1)
    customer_name: Optional[str] = None


class SaleItemOut(BaseModel):
    product_id: int
    batch_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    class Config:
        from_attributes = True


class SaleOut(BaseModel):
    id: int
    sale_number: Optional[str] = None
    customer_name: Optional[str] = None
    total_amount: Decimal
    created_at: Optional[datetime] = None
    items: List[SaleItemOut] = []

    class Config:
        from_attributes = True
