"""Newsletter subscription endpoints and admin broadcast tools."""
from datetime import datetime, timedelta
from typing import Optional
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.api.utils import paginate
from sphire.core.database import get_db
from sphire.core.security import get_current_admin
from sphire.models.activity_log import ActivityAction, ActivityResource
from sphire.models.newsletter import NewsletterSubscriber, SubscriptionSource
from sphire.models.user import User
from sphire.schemas.common import Message
from sphire.schemas.newsletter import (
    NewsletterSend, NewsletterSendResult, NewsletterStats, SubscribeRequest,
    SubscriberPage, SubscriptionResult, UnsubscribeRequest,
)
from sphire.services.activity import log_activity
from sphire.services.email import EmailService, get_email_service

logger = structlog.get_logger()

router = APIRouter()


async def find_subscriber(db: AsyncSession, email: str) -> Optional[NewsletterSubscriber]:
    result = await db.execute(
        select(NewsletterSubscriber).where(NewsletterSubscriber.email == email)
    )
    return result.scalar_one_or_none()


@router.post("/subscribe", response_model=SubscriptionResult, status_code=status.HTTP_201_CREATED)
async def subscribe(
    payload: SubscribeRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
):
    """Subscribe an email. Existing addresses answer 200 instead of 201."""
    subscriber = await find_subscriber(db, payload.email)

    if subscriber and subscriber.is_active:
        response.status_code = status.HTTP_200_OK
        return {"message": "Email is already subscribed to our newsletter", "subscriber": subscriber}

    if subscriber:
        subscriber.resubscribe()
        await db.commit()
        response.status_code = status.HTTP_200_OK
        logger.info("newsletter_resubscribed", subscriber_id=subscriber.id)
        return {"message": "Successfully resubscribed to newsletter", "subscriber": subscriber}

    subscriber = NewsletterSubscriber(
        email=payload.email,
        source=payload.source,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
    )
    db.add(subscriber)
    await db.commit()

    logger.info("newsletter_subscribed", subscriber_id=subscriber.id, source=payload.source.value)
    await email.send_newsletter_welcome(subscriber.email)

    return {"message": "Successfully subscribed to newsletter", "subscriber": subscriber}


@router.post("/unsubscribe", response_model=Message)
async def unsubscribe(
    payload: UnsubscribeRequest,
    db: AsyncSession = Depends(get_db),
):
    subscriber = await find_subscriber(db, payload.email)

    if not subscriber:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Email not found in our newsletter list",
        )

    if not subscriber.is_active:
        return {"message": "Email is already unsubscribed"}

    subscriber.unsubscribe()
    await db.commit()

    logger.info("newsletter_unsubscribed", subscriber_id=subscriber.id)
    return {"message": "Successfully unsubscribed from newsletter"}


@router.get("/subscribers", response_model=SubscriberPage)
async def list_subscribers(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    is_active: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Subscribers, newest first (admin)."""
    query = select(NewsletterSubscriber)
    if is_active is not None:
        query = query.where(NewsletterSubscriber.is_active.is_(is_active))
    if search:
        query = query.where(NewsletterSubscriber.email.ilike(f"%{search}%"))
    query = query.order_by(NewsletterSubscriber.subscribed_at.desc(), NewsletterSubscriber.id.desc())

    subscribers, total = await paginate(db, query, page, page_size)
    active_count = (await db.execute(
        select(func.count(NewsletterSubscriber.id)).where(NewsletterSubscriber.is_active.is_(True))
    )).scalar() or 0

    return SubscriberPage.build(subscribers, total, page, page_size, active_count=active_count)


@router.get("/stats", response_model=NewsletterStats)
async def newsletter_stats(
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Subscription totals, recent growth and sign-up sources (admin)."""
    total = (await db.execute(select(func.count(NewsletterSubscriber.id)))).scalar() or 0
    active = (await db.execute(
        select(func.count(NewsletterSubscriber.id)).where(NewsletterSubscriber.is_active.is_(True))
    )).scalar() or 0
    recent = (await db.execute(
        select(func.count(NewsletterSubscriber.id)).where(
            NewsletterSubscriber.subscribed_at >= datetime.utcnow() - timedelta(days=30)
        )
    )).scalar() or 0

    result = await db.execute(
        select(NewsletterSubscriber.source, func.count(NewsletterSubscriber.id))
        .where(NewsletterSubscriber.is_active.is_(True))
        .group_by(NewsletterSubscriber.source)
    )
    sources = {source.value: 0 for source in SubscriptionSource}
    for source, count in result.all():
        sources[source.value] = count

    rate = active / total * 100 if total else 0.0
    return {
        "total_subscribers": total,
        "active_subscribers": active,
        "unsubscribed": total - active,
        "recent_subscriptions": recent,
        "source_breakdown": sources,
        "subscription_rate": f"{rate:.2f}%",
    }


@router.delete("/subscribers/{subscriber_id}", response_model=Message)
async def delete_subscriber(
    subscriber_id: int,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    subscriber = await db.get(NewsletterSubscriber, subscriber_id)
    if not subscriber:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscriber not found",
        )

    await db.delete(subscriber)
    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.DELETE,
        resource=ActivityResource.NEWSLETTER,
        resource_id=subscriber_id,
        description=f"Deleted newsletter subscriber {subscriber.email}",
        request=request,
    )
    await db.commit()
    return {"message": "Subscriber deleted successfully"}


@router.post("/send", response_model=NewsletterSendResult)
async def send_newsletter(
    payload: NewsletterSend,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
):
    """Email a broadcast to every active subscriber (admin)."""
    result = await db.execute(
        select(NewsletterSubscriber.email).where(NewsletterSubscriber.is_active.is_(True))
    )
    recipients = list(result.scalars().all())

    if not recipients:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No active subscribers found",
        )

    sent = await email.send_newsletter(recipients, payload.subject, payload.content)

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.SEND,
        resource=ActivityResource.NEWSLETTER,
        description=f"Sent newsletter '{payload.subject}'",
        details={"recipients": len(recipients), "delivered": sent},
        request=request,
    )
    await db.commit()

    return {
        "message": f"Newsletter sent to {len(recipients)} subscribers",
        "recipient_count": len(recipients),
    }
