"""Warehouse, store and delivery-zone locations."""
from datetime import datetime
from typing import Optional
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Enum as SQLEnum
import enum

from sphire.core.database import Base


class LocationType(str, enum.Enum):
    """Kinds of location."""
    WAREHOUSE = "warehouse"
    STORE = "store"
    PICKUP_POINT = "pickup_point"
    SHIPPING_ZONE = "shipping_zone"


class Location(Base):
    """Physical site or shipping zone with its delivery rules."""

    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    type = Column(SQLEnum(LocationType), nullable=False, index=True)
    code = Column(String(10), unique=True, nullable=False, index=True)

    # Nested documents
    address = Column(JSON, default=dict, nullable=False)
    contact = Column(JSON, default=dict, nullable=False)
    manager = Column(JSON, default=dict, nullable=False)
    operating_hours = Column(JSON, default=dict, nullable=False)
    capacity = Column(JSON, default=dict, nullable=False)
    services = Column(JSON, default=list, nullable=False)
    delivery_zones = Column(JSON, default=list, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    notes = Column(String(500))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def zone_for_city(self, city: str) -> Optional[dict]:
        wanted = city.strip().lower()
        for zone in self.delivery_zones or []:
            if any(c.strip().lower() == wanted for c in zone.get("cities", [])):
                return zone
        return None

    def calculate_delivery_cost(self, city: str, order_value: float) -> Optional[float]:
        """
        Delivery cost for an order shipped to ``city``.

        Returns None when no delivery zone of this location serves the city,
        0 when the order clears the zone's free-delivery threshold.
        """
        zone = self.zone_for_city(city)
        if zone is None:
            return None
        threshold = zone.get("free_delivery_threshold")
        if threshold is not None and order_value >= threshold:
            return 0.0
        return float(zone.get("delivery_cost", 0))

    def __repr__(self):
        return f"<Location {self.code}>"
