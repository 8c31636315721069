from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    sku: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    manufacturer: Optional[str] = None
    unit: str = "strip"
    min_stock_level: int = Field(10, ge=0)
    gst_rate: Decimal = Field(Decimal("0"), ge=0)
    seasonality: str = "All Year"
    is_prescription_required: bool = False


class ProductOut(BaseModel):
    id: int
    tenant_id: int
    name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    manufacturer: Optional[str] = None
    unit: str
    min_stock_level: int
    gst_rate: Decimal
    seasonality: str
    is_prescription_required: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductStockOut(ProductOut):
    total_stock: int = 0


class StockOut(BaseModel):
    product_id: int
    total_stock: int


class BatchCreate(BaseModel):
    batch_number: str = Field(..., min_length=1)
    expiry_date: date
    quantity: int = Field(..., ge=0)
    mrp: Decimal = Field(..., ge=0)
    purchase_rate: Decimal = Field(..., ge=0)
    supplier_id: Optional[int] = None
    rack_location: Optional[str] = None


class BatchOut(BaseModel):
    id: int
    product_id: int
    batch_number: str
    expiry_date: date
    quantity: int
    mrp: Decimal
    purchase_rate: Decimal
    supplier_id: Optional[int] = None
    rack_location: Optional[str] = None

    class Config:
        from_attributes = True


class TrendCreate(BaseModel):
    name: str = Field(..., min_length=1)
    affected_categories: List[str] = []
    boost_factor: float = Field(1.2, gt=0)


class TrendOut(BaseModel):
    id: int
    name: str
    affected_categories: List[str] = []
    boost_factor: float
    is_active: bool

    class Config:
        from_attributes = True
