"""Database models."""
from sphire.models.user import User, Address, UserRole, AddressType
from sphire.models.product import Product, Category, AvailabilityStatus
from sphire.models.cart import Cart, CartItem
from sphire.models.order import Order, OrderItem, OrderStatus, PaymentStatus, PaymentMethod
from sphire.models.review import Review, ReviewReport, ReportReason
from sphire.models.newsletter import NewsletterSubscriber, SubscriptionSource
from sphire.models.location import Location, LocationType
from sphire.models.settings import StoreSettings
from sphire.models.activity_log import ActivityLog, ActivityAction, ActivityResource, ActivityStatus

__all__ = [
    "User", "Address", "UserRole", "AddressType",
    "Product", "Category", "AvailabilityStatus",
    "Cart", "CartItem",
    "Order", "OrderItem", "OrderStatus", "PaymentStatus", "PaymentMethod",
    "Review", "ReviewReport", "ReportReason",
    "NewsletterSubscriber", "SubscriptionSource",
    "Location", "LocationType",
    "StoreSettings",
    "ActivityLog", "ActivityAction", "ActivityResource", "ActivityStatus",
]
