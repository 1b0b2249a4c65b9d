from pydantic import BaseModel, Field


class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)


class UpdateQuantityRequest(BaseModel):
    quantity: int
