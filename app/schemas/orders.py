from datetime import date
from typing import Optional
from pydantic import BaseModel, Field


class ShipRequest(BaseModel):
    courier_name: Optional[str] = Field(default=None, max_length=100)
    tracking_number: Optional[str] = Field(default=None, max_length=100)
    estimated_delivery_date: Optional[date] = None


class TrackingUpdateRequest(ShipRequest):
    pass
