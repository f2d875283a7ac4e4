"""Dashboard, settings and activity-log schemas."""
from datetime import datetime, date
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, ConfigDict

from sphire.models.activity_log import ActivityAction, ActivityResource, ActivityStatus
from sphire.schemas.order import OrderResponse
from sphire.schemas.user import UserResponse


class UserStats(BaseModel):
    total: int
    active: int
    inactive: int
    admins: int


class ProductStats(BaseModel):
    total: int
    total_stock: int
    low_stock: int
    out_of_stock: int
    average_price: float


class OrderTotals(BaseModel):
    total: int
    total_revenue: float
    average_order_value: float
    status_counts: Dict[str, int]


class DashboardStats(BaseModel):
    users: UserStats
    products: ProductStats
    orders: OrderTotals


class UserWithOrders(UserResponse):
    recent_orders: List[OrderResponse] = []


class RevenuePoint(BaseModel):
    date: date
    revenue: float
    orders: int


class RevenueAnalytics(BaseModel):
    period: str
    start_date: datetime
    total_revenue: float
    total_orders: int
    data: List[RevenuePoint]


# Settings sections. Keys not declared here are stored as sent.

class _Section(BaseModel):
    model_config = ConfigDict(extra="allow")


class PaymentSection(_Section):
    tax_rate: Optional[float] = Field(None, ge=0, le=100)
    currency: Optional[Dict[str, Any]] = None


class ShippingSection(_Section):
    default_shipping_cost: Optional[float] = Field(None, ge=0)
    free_shipping_threshold: Optional[float] = Field(None, ge=0)
    processing_time: Optional[int] = Field(None, ge=0)


class SecuritySection(_Section):
    session_timeout: Optional[int] = Field(None, ge=300)
    max_login_attempts: Optional[int] = Field(None, ge=3)
    lockout_duration: Optional[int] = Field(None, ge=300)


class SettingsUpdate(BaseModel):
    business_info: Optional[_Section] = None
    shipping: Optional[ShippingSection] = None
    payment: Optional[PaymentSection] = None
    notifications: Optional[_Section] = None
    seo: Optional[_Section] = None
    social_media: Optional[_Section] = None
    maintenance: Optional[_Section] = None
    security: Optional[SecuritySection] = None
    system: Optional[_Section] = None
    features: Optional[_Section] = None


class SettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    business_info: Dict[str, Any]
    shipping: Dict[str, Any]
    payment: Dict[str, Any]
    notifications: Dict[str, Any]
    seo: Dict[str, Any]
    social_media: Dict[str, Any]
    maintenance: Dict[str, Any]
    security: Dict[str, Any]
    system: Dict[str, Any]
    features: Dict[str, Any]
    updated_at: datetime


class ActivityLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    action: ActivityAction
    resource: ActivityResource
    resource_id: Optional[str] = None
    description: str
    details: Dict[str, Any] = {}
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    status: ActivityStatus
    error_message: Optional[str] = None
    created_at: datetime
