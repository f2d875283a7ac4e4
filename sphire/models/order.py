"""Order models."""
from datetime import datetime
from typing import Optional
from sqlalchemy import (
    Column, Integer, String, Text, Float, DateTime, ForeignKey,
    JSON, Enum as SQLEnum, Index
)
from sqlalchemy.orm import relationship
import enum

from sphire.core.database import Base


class OrderStatus(str, enum.Enum):
    """Fulfilment status."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    """Payment status."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    """Supported payment methods."""
    COD = "cod"


CANCELLABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED)


class Order(Base):
    """Placed order with snapshotted items and address."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(40), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    shipping_address = Column(JSON, nullable=False)
    notes = Column(String(500))

    # Payment
    payment_method = Column(SQLEnum(PaymentMethod), default=PaymentMethod.COD, nullable=False)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)

    # Totals
    subtotal = Column(Float, nullable=False)
    shipping_cost = Column(Float, default=0.0, nullable=False)
    tax = Column(Float, default=0.0, nullable=False)
    total = Column(Float, nullable=False)

    # Fulfilment
    order_status = Column(SQLEnum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)
    tracking_number = Column(String(100))
    estimated_delivery = Column(DateTime)
    delivered_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    cancellation_reason = Column(String(500))
    admin_notes = Column(Text)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_order_user_created", "user_id", "created_at"),
        Index("idx_order_status_created", "order_status", "created_at"),
    )

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    # Only read these where the query loaded ``Order.user``
    @property
    def customer_name(self):
        return self.user.name if self.user else None

    @property
    def customer_email(self):
        return self.user.email if self.user else None

    def update_status(self, new_status: OrderStatus, notes: Optional[str] = None) -> None:
        """Move the order to ``new_status`` and stamp the matching timestamps."""
        self.order_status = new_status

        if new_status == OrderStatus.DELIVERED:
            self.delivered_at = datetime.utcnow()
            self.payment_status = PaymentStatus.PAID
        elif new_status == OrderStatus.CANCELLED:
            self.cancelled_at = datetime.utcnow()
            if notes:
                self.cancellation_reason = notes
        elif notes:
            self.admin_notes = notes

    def add_tracking_number(self, tracking_number: str) -> None:
        self.tracking_number = tracking_number
        self.order_status = OrderStatus.SHIPPED

    def __repr__(self):
        return f"<Order {self.order_number}>"


class OrderItem(Base):
    """Line item frozen at the time the order was placed."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False)
    image = Column(String(500))

    order = relationship("Order", back_populates="items")

    @property
    def subtotal(self) -> float:
        return round(self.price * self.quantity, 2)
