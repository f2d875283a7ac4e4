"""Location schemas."""
from datetime import datetime
from typing import Annotated, Optional, List, Dict, Any
from pydantic import BaseModel, BeforeValidator, Field, ConfigDict, model_validator

from sphire.models.location import LocationType


def _upper(value):
    return value.strip().upper() if isinstance(value, str) else value


LocationCode = Annotated[str, BeforeValidator(_upper), Field(min_length=1, max_length=10)]


class DeliveryTime(BaseModel):
    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_range(self):
        if self.max < self.min:
            raise ValueError("max delivery time must not be below min")
        return self


class DeliveryZone(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    cities: List[str] = []
    delivery_time: Optional[DeliveryTime] = None
    delivery_cost: float = Field(0, ge=0)
    free_delivery_threshold: Optional[float] = Field(None, ge=0)


class LocationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: LocationType
    code: LocationCode
    address: Dict[str, Any] = {}
    contact: Dict[str, Any] = {}
    manager: Dict[str, Any] = {}
    operating_hours: Dict[str, Any] = {}
    capacity: Dict[str, Any] = {}
    services: List[str] = []
    delivery_zones: List[DeliveryZone] = []
    is_active: bool = True
    is_default: bool = False
    notes: Optional[str] = Field(None, max_length=500)


class LocationCreate(LocationBase):
    """Schema for creating a location."""


class LocationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[LocationType] = None
    code: Optional[LocationCode] = None
    address: Optional[Dict[str, Any]] = None
    contact: Optional[Dict[str, Any]] = None
    manager: Optional[Dict[str, Any]] = None
    operating_hours: Optional[Dict[str, Any]] = None
    capacity: Optional[Dict[str, Any]] = None
    services: Optional[List[str]] = None
    delivery_zones: Optional[List[DeliveryZone]] = None
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=500)


class LocationResponse(LocationBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime


class DeliveryQuote(BaseModel):
    location_id: int
    city: str
    order_value: float
    delivery_cost: Optional[float] = None
    serviceable: bool
