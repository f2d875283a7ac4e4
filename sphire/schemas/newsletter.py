"""Newsletter schemas."""
from datetime import datetime
from typing import Optional, Dict
from pydantic import BaseModel, Field, ConfigDict

from sphire.models.newsletter import SubscriptionSource
from sphire.schemas.common import Page
from sphire.schemas.user import NormalizedEmail


class SubscribeRequest(BaseModel):
    email: NormalizedEmail
    source: SubscriptionSource = SubscriptionSource.FOOTER


class UnsubscribeRequest(BaseModel):
    email: NormalizedEmail


class SubscriberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    is_active: bool
    source: SubscriptionSource
    subscribed_at: datetime
    unsubscribed_at: Optional[datetime] = None


class SubscriptionResult(BaseModel):
    message: str
    subscriber: SubscriberResponse


class SubscriberPage(Page[SubscriberResponse]):
    active_count: int


class NewsletterStats(BaseModel):
    total_subscribers: int
    active_subscribers: int
    unsubscribed: int
    recent_subscriptions: int
    source_breakdown: Dict[str, int]
    subscription_rate: str


class NewsletterSend(BaseModel):
    subject: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)


class NewsletterSendResult(BaseModel):
    message: str
    recipient_count: int
