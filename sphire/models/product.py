"""Catalog models."""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Text, Float, Boolean,
    DateTime, ForeignKey, JSON, Index, CheckConstraint
)
import enum

from sphire.core.config import settings
from sphire.core.database import Base


class AvailabilityStatus(str, enum.Enum):
    """Stock state shown on product cards."""
    INACTIVE = "inactive"
    OUT_OF_STOCK = "out-of-stock"
    LOW_STOCK = "low-stock"
    IN_STOCK = "in-stock"


class Category(Base):
    """Product category, optionally nested under a parent."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    slug = Column(String(60), unique=True, nullable=False, index=True)
    description = Column(String(500))
    image = Column(String(500))
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    # SEO
    meta_title = Column(String(60))
    meta_description = Column(String(160))

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Category {self.slug}>"


class Product(Base):
    """Sellable product."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    original_price = Column(Float)
    images = Column(JSON, default=list, nullable=False)

    # Classification
    category = Column(String(60), nullable=False, index=True)
    subcategory = Column(String(60), index=True)
    brand = Column(String(100), default="Sphire Premium")
    tags = Column(JSON, default=list, nullable=False)

    # Inventory
    in_stock = Column(Boolean, default=True, nullable=False)
    stock_quantity = Column(Integer, default=0, nullable=False)

    # Reviews
    rating = Column(Float, default=0.0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)

    # Details
    features = Column(JSON, default=list, nullable=False)
    ingredients = Column(JSON, default=list, nullable=False)
    skin_type = Column(JSON, default=list, nullable=False)
    benefits = Column(JSON, default=list, nullable=False)
    how_to_use = Column(String(1000))
    weight = Column(String(50))

    # Merchandising
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    is_featured = Column(Boolean, default=False, nullable=False)
    is_new = Column(Boolean, default=False, nullable=False)
    is_on_sale = Column(Boolean, default=False, nullable=False)
    sale_start_date = Column(DateTime)
    sale_end_date = Column(DateTime)

    # SEO
    seo_title = Column(String(60))
    seo_description = Column(String(160))
    meta_keywords = Column(JSON, default=list, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price_non_negative"),
        CheckConstraint("stock_quantity >= 0", name="ck_product_stock_non_negative"),
        Index("idx_product_active_category", "is_active", "category"),
        Index("idx_product_active_created", "is_active", "created_at"),
    )

    @property
    def discount_percentage(self) -> int:
        if self.original_price and self.price is not None and self.original_price > self.price:
            return round((self.original_price - self.price) / self.original_price * 100)
        return 0

    @property
    def availability_status(self) -> AvailabilityStatus:
        if not self.is_active:
            return AvailabilityStatus.INACTIVE
        if (self.stock_quantity or 0) == 0:
            return AvailabilityStatus.OUT_OF_STOCK
        if self.stock_quantity <= settings.LOW_STOCK_THRESHOLD:
            return AvailabilityStatus.LOW_STOCK
        return AvailabilityStatus.IN_STOCK

    @property
    def is_available(self) -> bool:
        return bool(self.is_active and self.in_stock and (self.stock_quantity or 0) > 0)

    @property
    def is_on_sale_now(self) -> bool:
        if not self.is_on_sale:
            return False
        now = datetime.utcnow()
        if self.sale_start_date and now < self.sale_start_date:
            return False
        if self.sale_end_date and now > self.sale_end_date:
            return False
        return True

    @property
    def primary_image(self):
        return self.images[0] if self.images else None

    def update_stock(self, delta: int) -> None:
        """Shift stock by ``delta``, never below zero, keeping ``in_stock`` in step."""
        self.stock_quantity = max(0, (self.stock_quantity or 0) + delta)
        self.in_stock = self.stock_quantity > 0

    def __repr__(self):
        return f"<Product {self.name}>"
