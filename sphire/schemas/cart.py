"""Cart schemas."""
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict

from sphire.schemas.product import ProductSummary


class CartItemAdd(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1, le=100)


class CartItemUpdate(BaseModel):
    # 0 removes the line
    quantity: int = Field(..., ge=0, le=100)


class CartSync(BaseModel):
    """Client-side cart pushed after signing in."""
    items: List[CartItemAdd] = []


class CartItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    quantity: int
    price: float
    subtotal: float
    product: Optional[ProductSummary] = None


class CartResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    items: List[CartItemResponse] = []
    total: float = 0.0
    item_count: int = 0


class CartCount(BaseModel):
    count: int
