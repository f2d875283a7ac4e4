"""Review schemas."""
from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, Field, ConfigDict

from sphire.models.review import ReportReason
from sphire.schemas.common import Page


class ReviewCreate(BaseModel):
    """Schema for creating a review."""
    product_id: int
    rating: int = Field(..., ge=1, le=5)
    title: str = Field(..., min_length=5, max_length=100)
    comment: str = Field(..., min_length=10, max_length=1000)
    images: List[str] = []


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    title: Optional[str] = Field(None, min_length=5, max_length=100)
    comment: Optional[str] = Field(None, min_length=10, max_length=1000)
    images: Optional[List[str]] = None


class ReviewReportCreate(BaseModel):
    reason: ReportReason


class ReviewModeration(BaseModel):
    """Optional note attached when approving or rejecting."""
    moderation_notes: Optional[str] = Field(None, max_length=500)


class ReviewAdminResponse(BaseModel):
    response: str = Field(..., min_length=1, max_length=500)


class ReviewResponse(BaseModel):
    """Schema for review response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    user_name: Optional[str] = None
    product_id: int
    order_id: Optional[int] = None
    rating: int
    title: str
    comment: str
    images: List[str] = []
    is_verified_purchase: bool
    is_approved: bool
    helpful_votes: int
    admin_response: Optional[str] = None
    responded_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ReviewAdminView(ReviewResponse):
    product_name: Optional[str] = None
    is_active: bool
    report_count: int
    moderation_notes: Optional[str] = None


class ReviewStats(BaseModel):
    total_reviews: int
    average_rating: float
    rating_distribution: Dict[int, int]
    verified_purchases: int


class ProductReviews(Page[ReviewResponse]):
    stats: ReviewStats


class HelpfulVotes(BaseModel):
    helpful_votes: int
