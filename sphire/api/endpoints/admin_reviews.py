"""Admin review moderation."""
from datetime import datetime
from enum import Enum
from typing import Optional
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.api.utils import paginate
from sphire.core.config import settings
from sphire.core.database import get_db
from sphire.core.security import get_current_admin
from sphire.models.activity_log import ActivityAction, ActivityResource
from sphire.models.review import Review
from sphire.models.user import User
from sphire.schemas.common import Message, Page
from sphire.schemas.review import ReviewAdminResponse, ReviewAdminView, ReviewModeration
from sphire.services.activity import log_activity
from sphire.services.ratings import recalculate_product_rating

logger = structlog.get_logger()

router = APIRouter()


class ModerationState(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


async def get_review_or_404(db: AsyncSession, review_id: int) -> Review:
    review = await db.get(Review, review_id)
    if not review:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Review not found",
        )
    return review


@router.get("/reviews", response_model=Page[ReviewAdminView])
async def list_reviews(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    state: Optional[ModerationState] = Query(None, alias="status"),
    rating: Optional[int] = Query(None, ge=1, le=5),
    product_id: Optional[int] = None,
    user_id: Optional[int] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    query = select(Review)
    if state == ModerationState.PENDING:
        query = query.where(Review.is_approved.is_(False), Review.is_active.is_(True))
    elif state == ModerationState.APPROVED:
        query = query.where(Review.is_approved.is_(True), Review.is_active.is_(True))
    elif state == ModerationState.REJECTED:
        query = query.where(Review.is_active.is_(False))
    if rating:
        query = query.where(Review.rating == rating)
    if product_id:
        query = query.where(Review.product_id == product_id)
    if user_id:
        query = query.where(Review.user_id == user_id)
    query = query.order_by(Review.created_at.desc(), Review.id.desc())

    reviews, total = await paginate(db, query, page, page_size)
    return Page[ReviewAdminView].build(reviews, total, page, page_size)


@router.get("/reviews/pending", response_model=Page[ReviewAdminView])
async def pending_reviews(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Reviews waiting for moderation, oldest first."""
    query = (
        select(Review)
        .where(Review.is_approved.is_(False), Review.is_active.is_(True))
        .order_by(Review.created_at.asc(), Review.id.asc())
    )
    reviews, total = await paginate(db, query, page, page_size)
    return Page[ReviewAdminView].build(reviews, total, page, page_size)


@router.put("/reviews/{review_id}/approve", response_model=ReviewAdminView)
async def approve_review(
    review_id: int,
    request: Request,
    payload: Optional[ReviewModeration] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    review = await get_review_or_404(db, review_id)
    review.is_approved = True
    review.is_active = True
    if payload and payload.moderation_notes:
        review.moderation_notes = payload.moderation_notes

    await recalculate_product_rating(db, review.product_id)
    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.APPROVE,
        resource=ActivityResource.REVIEW,
        resource_id=review.id,
        description=f"Approved review {review.id} on product {review.product_id}",
        request=request,
    )
    await db.commit()
    return review


@router.put("/reviews/{review_id}/reject", response_model=ReviewAdminView)
async def reject_review(
    review_id: int,
    request: Request,
    payload: Optional[ReviewModeration] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Reject a review, hiding it from the storefront."""
    review = await get_review_or_404(db, review_id)
    review.is_approved = False
    review.is_active = False
    if payload and payload.moderation_notes:
        review.moderation_notes = payload.moderation_notes

    await recalculate_product_rating(db, review.product_id)
    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.REJECT,
        resource=ActivityResource.REVIEW,
        resource_id=review.id,
        description=f"Rejected review {review.id} on product {review.product_id}",
        details={"notes": review.moderation_notes},
        request=request,
    )
    await db.commit()
    return review


@router.post("/reviews/{review_id}/respond", response_model=ReviewAdminView)
async def respond_to_review(
    review_id: int,
    payload: ReviewAdminResponse,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Attach a public store response to a review."""
    review = await get_review_or_404(db, review_id)
    review.admin_response = payload.response
    review.responded_by_id = admin.id
    review.responded_at = datetime.utcnow()

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.RESPOND,
        resource=ActivityResource.REVIEW,
        resource_id=review.id,
        description=f"Responded to review {review.id}",
        request=request,
    )
    await db.commit()
    return review


@router.delete("/reviews/{review_id}", response_model=Message)
async def delete_review(
    review_id: int,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Permanently remove a review."""
    review = await get_review_or_404(db, review_id)
    product_id = review.product_id

    await db.delete(review)
    await recalculate_product_rating(db, product_id)
    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.DELETE,
        resource=ActivityResource.REVIEW,
        resource_id=review_id,
        description=f"Deleted review {review_id} on product {product_id}",
        request=request,
    )
    await db.commit()

    logger.info("review_deleted", review_id=review_id, admin_id=admin.id)
    return {"message": "Review deleted successfully"}
