"""User and address models."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from sphire.core.database import Base


class UserRole(str, enum.Enum):
    """User roles."""
    USER = "user"
    ADMIN = "admin"


class AddressType(str, enum.Enum):
    """Address labels."""
    HOME = "home"
    WORK = "work"
    OTHER = "other"


class User(Base):
    """Customer or administrator account."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    phone = Column(String(20))
    avatar_url = Column(String(500))

    # Status
    role = Column(SQLEnum(UserRole), default=UserRole.USER, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)

    # Preferences
    newsletter = Column(Boolean, default=True, nullable=False)
    notifications = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime)

    # Relationships
    addresses = relationship(
        "Address",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Address.id",
        lazy="selectin",
    )
    cart = relationship("Cart", back_populates="user", uselist=False, cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="user")
    reviews = relationship(
        "Review",
        back_populates="user",
        foreign_keys="Review.user_id",
        cascade="all, delete-orphan",
    )

    @property
    def default_address(self):
        return next((a for a in self.addresses if a.is_default), None)

    def set_default_address(self, address: "Address") -> None:
        for other in self.addresses:
            other.is_default = other is address

    def remove_address(self, address: "Address") -> None:
        """Drop an address; if it was the default, the first remaining one takes over."""
        was_default = address.is_default
        self.addresses.remove(address)
        if was_default and self.addresses:
            self.set_default_address(self.addresses[0])

    def __repr__(self):
        return f"<User {self.email}>"


class Address(Base):
    """Saved shipping address."""

    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(SQLEnum(AddressType), default=AddressType.HOME, nullable=False)
    street = Column(String(200), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    state = Column(String(100), nullable=False)
    zip_code = Column(String(20), nullable=False)
    country = Column(String(100), default="Pakistan", nullable=False, index=True)
    is_default = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="addresses")

    def snapshot(self) -> dict:
        """Plain copy stored on orders so later edits don't rewrite history."""
        return {
            "type": self.type.value if self.type else AddressType.HOME.value,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
        }

    def __repr__(self):
        return f"<Address {self.city} user={self.user_id}>"
