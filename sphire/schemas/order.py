"""Order schemas."""
from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, Field, ConfigDict, model_validator

from sphire.models.order import OrderStatus, PaymentStatus, PaymentMethod
from sphire.schemas.user import AddressBase


class ShippingAddress(AddressBase):
    """Address snapshot stored on an order."""


class OrderCreate(BaseModel):
    """Checkout request: a saved address or an inline one."""
    address_id: Optional[int] = None
    shipping_address: Optional[ShippingAddress] = None
    payment_method: PaymentMethod = PaymentMethod.COD
    notes: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def require_address(self):
        if self.address_id is None and self.shipping_address is None:
            raise ValueError("Either address_id or shipping_address is required")
        return self


class OrderCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: Optional[int] = None
    name: str
    price: float
    quantity: int
    image: Optional[str] = None
    subtotal: float


class OrderResponse(BaseModel):
    """Schema for order response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    user_id: int
    items: List[OrderItemResponse]
    item_count: int
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    order_status: OrderStatus
    subtotal: float
    shipping_cost: float
    tax: float
    total: float
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AdminOrderResponse(OrderResponse):
    admin_notes: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None


class OrderTracking(BaseModel):
    """Public view of an order looked up by its number."""
    model_config = ConfigDict(from_attributes=True)

    order_number: str
    order_status: OrderStatus
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    item_count: int
    created_at: datetime


class OrderStats(BaseModel):
    total_orders: int
    total_spent: float
    average_order_value: float
    status_counts: Dict[str, int]


class UnavailableItem(BaseModel):
    product: str
    requested: int
    available: int


class OrderStatusUpdate(BaseModel):
    """Admin status change."""
    status: Optional[OrderStatus] = None
    tracking_number: Optional[str] = Field(None, max_length=100)
    estimated_delivery: Optional[datetime] = None
    admin_notes: Optional[str] = Field(None, max_length=1000)
