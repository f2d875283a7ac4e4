"""Store-wide settings model."""
import copy
from datetime import datetime
from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, JSON

from sphire.core.database import Base

SETTINGS_SECTIONS = (
    "business_info",
    "shipping",
    "payment",
    "notifications",
    "seo",
    "social_media",
    "maintenance",
    "security",
    "system",
    "features",
)

DEFAULT_SETTINGS = {
    "business_info": {
        "name": "Sphire Premium",
        "tagline": "Premium beauty essentials",
        "email": "info@sphire.store",
        "phone": "+92 300 0000000",
        "address": {
            "street": "1 Main Boulevard",
            "city": "Lahore",
            "state": "Punjab",
            "zip_code": "54000",
            "country": "Pakistan",
        },
    },
    "shipping": {
        "default_shipping_cost": 10,
        "free_shipping_threshold": 100,
        "processing_time": 1,
        "shipping_methods": [],
    },
    "payment": {
        "accepted_methods": ["cash_on_delivery"],
        "currency": {"primary": "PKR", "symbol": "₨", "position": "before"},
        "tax_rate": 8,
        "tax_inclusive": False,
    },
    "notifications": {
        "email_notifications": {"new_order": True, "low_stock": True, "new_review": True},
        "low_stock_threshold": 10,
    },
    "seo": {"meta_title": "Sphire Premium", "meta_description": "", "keywords": []},
    "social_media": {},
    "maintenance": {"is_enabled": False, "message": "We are performing scheduled maintenance."},
    "security": {
        "session_timeout": 3600,
        "max_login_attempts": 5,
        "lockout_duration": 900,
        "require_email_verification": False,
    },
    "system": {"timezone": "Asia/Karachi", "date_format": "DD/MM/YYYY", "items_per_page": 20},
    "features": {"reviews": True, "wishlist": True, "newsletter": True, "guest_checkout": False},
}


def default_section(name: str) -> dict:
    return copy.deepcopy(DEFAULT_SETTINGS.get(name, {}))


def deep_merge(base: dict, updates: dict) -> dict:
    """Return ``base`` with ``updates`` merged in, recursing into nested dicts."""
    merged = copy.deepcopy(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class StoreSettings(Base):
    """Single active settings document edited from the dashboard."""

    __tablename__ = "store_settings"

    id = Column(Integer, primary_key=True, index=True)
    business_info = Column(JSON, default=lambda: default_section("business_info"), nullable=False)
    shipping = Column(JSON, default=lambda: default_section("shipping"), nullable=False)
    payment = Column(JSON, default=lambda: default_section("payment"), nullable=False)
    notifications = Column(JSON, default=lambda: default_section("notifications"), nullable=False)
    seo = Column(JSON, default=lambda: default_section("seo"), nullable=False)
    social_media = Column(JSON, default=lambda: default_section("social_media"), nullable=False)
    maintenance = Column(JSON, default=lambda: default_section("maintenance"), nullable=False)
    security = Column(JSON, default=lambda: default_section("security"), nullable=False)
    system = Column(JSON, default=lambda: default_section("system"), nullable=False)
    features = Column(JSON, default=lambda: default_section("features"), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    updated_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def apply(self, section: str, values: dict) -> None:
        """Merge ``values`` into a section, assigning a new dict so the change is tracked."""
        current = getattr(self, section) or {}
        setattr(self, section, deep_merge(current, values))

    def __repr__(self):
        return f"<StoreSettings {self.id}>"
