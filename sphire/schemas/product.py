"""Catalog schemas."""
from datetime import datetime
from typing import Annotated, Optional, List
from pydantic import BaseModel, BeforeValidator, Field, ConfigDict

from sphire.models.product import AvailabilityStatus


def _lower(value):
    return value.strip().lower() if isinstance(value, str) else value


Slug = Annotated[str, BeforeValidator(_lower), Field(min_length=1, max_length=60)]


class ProductBase(BaseModel):
    """Base product schema."""
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    images: List[str] = []
    category: Slug
    subcategory: Optional[Slug] = None
    brand: Optional[str] = Field("Sphire Premium", max_length=100)
    stock_quantity: int = Field(0, ge=0)
    features: List[str] = []
    ingredients: List[str] = []
    skin_type: List[str] = []
    benefits: List[str] = []
    tags: List[str] = []
    how_to_use: Optional[str] = Field(None, max_length=1000)
    weight: Optional[str] = Field(None, max_length=50)
    is_featured: bool = False
    is_new: bool = False
    is_on_sale: bool = False
    sale_start_date: Optional[datetime] = None
    sale_end_date: Optional[datetime] = None
    seo_title: Optional[str] = Field(None, max_length=60)
    seo_description: Optional[str] = Field(None, max_length=160)
    meta_keywords: List[str] = []


class ProductCreate(ProductBase):
    """Schema for creating a product."""
    is_active: bool = True


class ProductUpdate(BaseModel):
    """Schema for updating a product."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    images: Optional[List[str]] = None
    category: Optional[Slug] = None
    subcategory: Optional[Slug] = None
    brand: Optional[str] = Field(None, max_length=100)
    stock_quantity: Optional[int] = Field(None, ge=0)
    features: Optional[List[str]] = None
    ingredients: Optional[List[str]] = None
    skin_type: Optional[List[str]] = None
    benefits: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    how_to_use: Optional[str] = Field(None, max_length=1000)
    weight: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    is_new: Optional[bool] = None
    is_on_sale: Optional[bool] = None
    sale_start_date: Optional[datetime] = None
    sale_end_date: Optional[datetime] = None
    seo_title: Optional[str] = Field(None, max_length=60)
    seo_description: Optional[str] = Field(None, max_length=160)
    meta_keywords: Optional[List[str]] = None


class ProductResponse(ProductBase):
    """Schema for product response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    in_stock: bool
    rating: float
    review_count: int
    is_active: bool
    discount_percentage: int
    availability_status: AvailabilityStatus
    is_available: bool
    is_on_sale_now: bool
    created_at: datetime
    updated_at: datetime


class ProductSummary(BaseModel):
    """Compact product shape embedded in carts."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float
    original_price: Optional[float] = None
    images: List[str] = []
    category: str
    in_stock: bool
    stock_quantity: int
    is_active: bool


class ProductDetail(ProductResponse):
    """Single product with related items from the same category."""
    related_products: List[ProductResponse] = []


class CategorySummary(BaseModel):
    """Category aggregate built from active products."""
    category: str
    subcategories: List[str]
    count: int


# Managed categories

class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    image: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[int] = None
    is_active: bool = True
    sort_order: int = 0
    meta_title: Optional[str] = Field(None, max_length=60)
    meta_description: Optional[str] = Field(None, max_length=160)


class CategoryCreate(CategoryBase):
    """Schema for creating a category."""


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    image: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[int] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    meta_title: Optional[str] = Field(None, max_length=60)
    meta_description: Optional[str] = Field(None, max_length=160)


class CategoryResponse(CategoryBase):
    """Schema for category response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    slug: str
    product_count: int = 0
    created_at: datetime


class CategoryTreeNode(CategoryResponse):
    children: List["CategoryTreeNode"] = []


CategoryTreeNode.model_rebuild()
