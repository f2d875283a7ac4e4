"""Pydantic schemas for API validation."""
from sphire.schemas.common import Page, Message
from sphire.schemas.user import (
    UserCreate, UserUpdate, UserResponse, UserLogin, Token, AuthResponse,
    AddressCreate, AddressUpdate, AddressResponse,
)
from sphire.schemas.product import (
    ProductCreate, ProductUpdate, ProductResponse, ProductDetail,
    CategoryCreate, CategoryUpdate, CategoryResponse,
)
from sphire.schemas.cart import CartResponse, CartItemAdd, CartItemUpdate
from sphire.schemas.order import OrderCreate, OrderResponse, OrderStatusUpdate
from sphire.schemas.review import ReviewCreate, ReviewUpdate, ReviewResponse

__all__ = [
    "Page", "Message",
    "UserCreate", "UserUpdate", "UserResponse", "UserLogin", "Token", "AuthResponse",
    "AddressCreate", "AddressUpdate", "AddressResponse",
    "ProductCreate", "ProductUpdate", "ProductResponse", "ProductDetail",
    "CategoryCreate", "CategoryUpdate", "CategoryResponse",
    "CartResponse", "CartItemAdd", "CartItemUpdate",
    "OrderCreate", "OrderResponse", "OrderStatusUpdate",
    "ReviewCreate", "ReviewUpdate", "ReviewResponse",
]
