"""Product review models."""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey,
    JSON, Enum as SQLEnum, Index, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
import enum

from sphire.core.database import Base


class ReportReason(str, enum.Enum):
    """Why a review was flagged."""
    INAPPROPRIATE = "inappropriate"
    SPAM = "spam"
    FAKE = "fake"
    OFFENSIVE = "offensive"
    OTHER = "other"


class Review(Base):
    """Customer review, hidden until approved by an admin."""

    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)

    rating = Column(Integer, nullable=False)
    title = Column(String(100), nullable=False)
    comment = Column(Text, nullable=False)
    images = Column(JSON, default=list, nullable=False)

    # Moderation
    is_verified_purchase = Column(Boolean, default=False, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    helpful_votes = Column(Integer, default=0, nullable=False)
    moderation_notes = Column(String(500))

    # Admin response
    admin_response = Column(String(500))
    responded_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    responded_at = Column(DateTime)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="reviews", foreign_keys=[user_id], lazy="selectin")
    product = relationship("Product", lazy="selectin")
    reports = relationship(
        "ReviewReport",
        back_populates="review",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
        Index("idx_review_product_visible", "product_id", "is_approved", "is_active"),
    )

    @property
    def user_name(self):
        return self.user.name if self.user else None

    @property
    def product_name(self):
        return self.product.name if self.product else None

    @property
    def report_count(self) -> int:
        return len(self.reports)

    def __repr__(self):
        return f"<Review {self.id} product={self.product_id} rating={self.rating}>"


class ReviewReport(Base):
    """A user's report against a review."""

    __tablename__ = "review_reports"

    id = Column(Integer, primary_key=True, index=True)
    review_id = Column(Integer, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reason = Column(SQLEnum(ReportReason), nullable=False)
    reported_at = Column(DateTime, default=datetime.utcnow)

    review = relationship("Review", back_populates="reports")

    __table_args__ = (
        UniqueConstraint("review_id", "user_id", name="uq_review_report_user"),
    )
