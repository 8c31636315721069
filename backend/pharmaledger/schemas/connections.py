from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ConnectionRequest(BaseModel):
    distributor_id: int


class ConnectionResponse(BaseModel):
    approve: bool


class ConnectionOut(BaseModel):
    id: int
    pharmacy_id: int
    distributor_id: int
    status: str
    requested_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None

    class Config:
        from_attributes = True
