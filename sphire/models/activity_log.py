"""Admin activity audit log."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Enum as SQLEnum, Index
import enum

from sphire.core.database import Base


class ActivityAction(str, enum.Enum):
    """What was done."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    RESPOND = "respond"
    STATUS_CHANGE = "status_change"
    SEND = "send"


class ActivityResource(str, enum.Enum):
    """What it was done to."""
    USER = "user"
    ADDRESS = "address"
    PRODUCT = "product"
    ORDER = "order"
    CATEGORY = "category"
    REVIEW = "review"
    LOCATION = "location"
    SETTINGS = "settings"
    NEWSLETTER = "newsletter"


class ActivityStatus(str, enum.Enum):
    """Outcome."""
    SUCCESS = "success"
    FAILURE = "failure"
    WARNING = "warning"


class ActivityLog(Base):
    """One admin action."""

    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(SQLEnum(ActivityAction), nullable=False)
    resource = Column(SQLEnum(ActivityResource), nullable=False)
    resource_id = Column(String(64))
    description = Column(String(500), nullable=False)
    details = Column(JSON, default=dict, nullable=False)
    ip_address = Column(String(64))
    user_agent = Column(String(500))
    status = Column(SQLEnum(ActivityStatus), default=ActivityStatus.SUCCESS, nullable=False)
    error_message = Column(String(1000))

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("idx_activity_resource_action", "resource", "action"),
    )

    def __repr__(self):
        return f"<ActivityLog {self.action} {self.resource}:{self.resource_id}>"
