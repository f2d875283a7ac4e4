"""Audit logging for admin actions."""
from typing import Optional, Any
import structlog
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.models.activity_log import ActivityLog, ActivityAction, ActivityResource, ActivityStatus

logger = structlog.get_logger()


def log_activity(
    db: AsyncSession,
    *,
    user_id: Optional[int],
    action: ActivityAction,
    resource: ActivityResource,
    description: str,
    resource_id: Optional[Any] = None,
    details: Optional[dict] = None,
    request: Optional[Request] = None,
    status: ActivityStatus = ActivityStatus.SUCCESS,
    error_message: Optional[str] = None,
) -> ActivityLog:
    """
    Queue an activity entry on the current session.

    The entry is written by the same commit as the change it describes.
    """
    entry = ActivityLog(
        user_id=user_id,
        action=action,
        resource=resource,
        resource_id=str(resource_id) if resource_id is not None else None,
        description=description[:500],
        details=details or {},
        ip_address=request.client.host if request and request.client else None,
        user_agent=request.headers.get("user-agent") if request else None,
        status=status,
        error_message=error_message,
    )
    db.add(entry)
    logger.info(
        "admin_activity",
        user_id=user_id,
        action=action.value,
        resource=resource.value,
        resource_id=entry.resource_id,
    )
    return entry
