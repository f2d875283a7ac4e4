"""Newsletter subscriber model."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum
import enum

from sphire.core.database import Base


class SubscriptionSource(str, enum.Enum):
    """Where the visitor signed up."""
    FOOTER = "footer"
    POPUP = "popup"
    CHECKOUT = "checkout"
    OTHER = "other"


class NewsletterSubscriber(Base):
    """Newsletter subscription, kept after unsubscribing for reporting."""

    __tablename__ = "newsletter_subscribers"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    source = Column(SQLEnum(SubscriptionSource), default=SubscriptionSource.FOOTER, nullable=False)

    # Preferences
    frequency = Column(String(20), default="weekly", nullable=False)
    wants_promotions = Column(Boolean, default=True, nullable=False)
    wants_new_products = Column(Boolean, default=True, nullable=False)

    # Request metadata
    ip_address = Column(String(64))
    user_agent = Column(String(500))
    referrer = Column(String(500))

    subscribed_at = Column(DateTime, default=datetime.utcnow, index=True)
    unsubscribed_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def unsubscribe(self) -> None:
        self.is_active = False
        self.unsubscribed_at = datetime.utcnow()

    def resubscribe(self) -> None:
        self.is_active = True
        self.subscribed_at = datetime.utcnow()
        self.unsubscribed_at = None

    def __repr__(self):
        return f"<NewsletterSubscriber {self.email}>"
