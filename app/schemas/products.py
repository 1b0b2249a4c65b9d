from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, constr


class ProductCreateRequest(BaseModel):
    title: constr(strip_whitespace=True, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[constr(strip_whitespace=True, max_length=50)] = None
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    original_price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    stock: int = Field(default=0, ge=0)
    images: List[str] = Field(default_factory=list)
    featured: bool = False
