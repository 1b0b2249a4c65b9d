from typing import Optional
from pydantic import BaseModel, Field


class StockUpdateRequest(BaseModel):
    stock: int = Field(ge=0)
    reason: Optional[str] = None


class AdjustmentRequest(BaseModel):
    quantity: int
    reason: str = Field(min_length=1)


class ReturnRestockRequest(BaseModel):
    quantity: int = Field(ge=1)
    order_id: Optional[str] = None
    reason: Optional[str] = None
