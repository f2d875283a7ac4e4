"""Product review endpoints."""
from enum import Enum
from typing import List
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.api.utils import paginate
from sphire.core.database import get_db
from sphire.core.security import get_current_user
from sphire.models.order import Order, OrderItem, OrderStatus
from sphire.models.product import Product
from sphire.models.review import Review, ReviewReport
from sphire.models.user import User
from sphire.schemas.common import Message
from sphire.schemas.review import (
    HelpfulVotes, ProductReviews, ReviewCreate, ReviewReportCreate,
    ReviewResponse, ReviewStats, ReviewUpdate,
)
from sphire.services.ratings import recalculate_product_rating

logger = structlog.get_logger()

router = APIRouter()


class ReviewSort(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    RATING_HIGH = "rating_high"
    RATING_LOW = "rating_low"
    HELPFUL = "helpful"
    VERIFIED = "verified"


SORT_ORDER = {
    ReviewSort.NEWEST: (Review.created_at.desc(),),
    ReviewSort.OLDEST: (Review.created_at.asc(),),
    ReviewSort.RATING_HIGH: (Review.rating.desc(), Review.created_at.desc()),
    ReviewSort.RATING_LOW: (Review.rating.asc(), Review.created_at.desc()),
    ReviewSort.HELPFUL: (Review.helpful_votes.desc(), Review.created_at.desc()),
    ReviewSort.VERIFIED: (Review.is_verified_purchase.desc(), Review.created_at.desc()),
}


def visible_reviews(product_id: int):
    return (
        Review.product_id == product_id,
        Review.is_approved.is_(True),
        Review.is_active.is_(True),
    )


async def review_stats(db: AsyncSession, product_id: int) -> ReviewStats:
    """Totals, average and 1-5 distribution over a product's visible reviews."""
    result = await db.execute(
        select(Review.rating, func.count(Review.id))
        .where(*visible_reviews(product_id))
        .group_by(Review.rating)
    )
    distribution = {rating: 0 for rating in range(1, 6)}
    for rating, count in result.all():
        distribution[rating] = count

    total = sum(distribution.values())
    average = sum(r * c for r, c in distribution.items()) / total if total else 0.0

    verified = (await db.execute(
        select(func.count(Review.id)).where(
            *visible_reviews(product_id), Review.is_verified_purchase.is_(True)
        )
    )).scalar() or 0

    return ReviewStats(
        total_reviews=total,
        average_rating=round(average, 1),
        rating_distribution=distribution,
        verified_purchases=verified,
    )


async def get_own_review(db: AsyncSession, review_id: int, user: User) -> Review:
    review = await db.get(Review, review_id)
    if not review or not review.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Review not found",
        )
    if review.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to modify this review",
        )
    return review


@router.get("/product/{product_id}", response_model=ProductReviews)
async def product_reviews(
    product_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    sort: ReviewSort = ReviewSort.NEWEST,
    db: AsyncSession = Depends(get_db),
):
    """Approved reviews for a product with rating statistics."""
    query = (
        select(Review)
        .where(*visible_reviews(product_id))
        .order_by(*SORT_ORDER[sort], Review.id.desc())
    )
    reviews, total = await paginate(db, query, page, page_size)
    stats = await review_stats(db, product_id)
    return ProductReviews.build(reviews, total, page, page_size, stats=stats)


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    review_data: ReviewCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a review; it stays hidden until an admin approves it."""
    product = await db.get(Product, review_data.product_id)
    if not product or not product.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )

    existing = await db.execute(
        select(Review.id).where(
            Review.user_id == user.id,
            Review.product_id == product.id,
            Review.is_active.is_(True),
        )
    )
    if existing.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You have already reviewed this product",
        )

    delivered = await db.execute(
        select(Order.id)
        .join(OrderItem, OrderItem.order_id == Order.id)
        .where(
            Order.user_id == user.id,
            Order.order_status == OrderStatus.DELIVERED,
            OrderItem.product_id == product.id,
        )
        .limit(1)
    )
    delivered_order_id = delivered.scalar()

    review = Review(
        user_id=user.id,
        user=user,
        product_id=product.id,
        product=product,
        order_id=delivered_order_id,
        rating=review_data.rating,
        title=review_data.title,
        comment=review_data.comment,
        images=review_data.images,
        is_verified_purchase=delivered_order_id is not None,
        reports=[],
    )
    db.add(review)
    await db.commit()

    logger.info("review_created", review_id=review.id, product_id=product.id, user_id=user.id)
    return review


@router.get("/user", response_model=List[ReviewResponse])
async def my_reviews(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The signed-in user's active reviews, approved or not."""
    result = await db.execute(
        select(Review)
        .where(Review.user_id == user.id, Review.is_active.is_(True))
        .order_by(Review.created_at.desc())
    )
    return result.scalars().all()


@router.put("/{review_id}/helpful", response_model=HelpfulVotes)
async def mark_helpful(
    review_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    review = await db.get(Review, review_id)
    if not review or not review.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Review not found",
        )

    review.helpful_votes += 1
    await db.commit()
    return {"helpful_votes": review.helpful_votes}


@router.post("/{review_id}/report", response_model=Message)
async def report_review(
    review_id: int,
    report: ReviewReportCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Flag a review for moderation; one report per user."""
    review = await db.get(Review, review_id)
    if not review or not review.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Review not found",
        )

    if any(r.user_id == user.id for r in review.reports):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You have already reported this review",
        )

    review.reports.append(ReviewReport(user_id=user.id, reason=report.reason))
    await db.commit()

    logger.info("review_reported", review_id=review.id, reason=report.reason.value)
    return {"message": "Review reported successfully"}


@router.put("/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: int,
    review_data: ReviewUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Edit an own review; an approved one goes back to moderation."""
    review = await get_own_review(db, review_id, user)
    was_approved = review.is_approved

    for field, value in review_data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(review, field, value)

    if was_approved:
        review.is_approved = False
        await recalculate_product_rating(db, review.product_id)

    await db.commit()
    return review


@router.delete("/{review_id}", response_model=Message)
async def delete_review(
    review_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete an own review."""
    review = await get_own_review(db, review_id, user)
    review.is_active = False
    await recalculate_product_rating(db, review.product_id)
    await db.commit()
    return {"message": "Review deleted successfully"}
