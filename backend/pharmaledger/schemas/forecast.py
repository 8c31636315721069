from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from decimal import Decimal


class DemandForecastOut(BaseModel):
    product_id: int
    name: str
    category: Optional[str] = None
    current_stock: int
    avg_daily_sales: float
    predicted_demand: int
    reorder_quantity: int
    boost_factor: float
    status: str  # Reorder | Sufficient
    reasons: List[str] = []

    class Config:
        from_attributes = True


class ExpiryRiskItemOut(BaseModel):
    batch_id: int
    product_id: int
    product_name: str
    batch_number: str
    expiry_date: date
    quantity: int
    days_to_expiry: int
    days_to_sell: float
    daily_velocity: float
    estimated_loss: Decimal
    suggested_action: str

    class Config:
        from_attributes = True


class HeatmapCellOut(BaseModel):
    month: str  # YYYY-MM
    label: str  # Jan 2027
    value: Decimal
    batches: int

    class Config:
        from_attributes = True


class ExpiryRiskOut(BaseModel):
    risk_items: List[ExpiryRiskItemOut] = []
    heatmap: List[HeatmapCellOut] = []
    total_value_at_risk: Decimal = Decimal("0")

    class Config:
        from_attributes = True
