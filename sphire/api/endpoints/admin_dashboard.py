"""Admin dashboard statistics, revenue analytics and activity logs."""
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.api.utils import paginate
from sphire.core.config import settings
from sphire.core.database import get_db
from sphire.core.security import get_current_admin
from sphire.models.activity_log import ActivityAction, ActivityLog, ActivityResource, ActivityStatus
from sphire.models.order import Order, OrderStatus
from sphire.models.product import Product
from sphire.models.user import User, UserRole
from sphire.schemas.admin import ActivityLogResponse, DashboardStats, RevenueAnalytics
from sphire.schemas.common import Page

router = APIRouter(dependencies=[Depends(get_current_admin)])


class RevenuePeriod(str, Enum):
    WEEK = "7d"
    MONTH = "30d"
    QUARTER = "90d"
    YEAR = "1y"


PERIOD_DAYS = {
    RevenuePeriod.WEEK: 7,
    RevenuePeriod.MONTH: 30,
    RevenuePeriod.QUARTER: 90,
    RevenuePeriod.YEAR: 365,
}


@router.get("/dashboard/stats", response_model=DashboardStats)
async def dashboard_stats(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
):
    """Headline numbers for users, catalog and orders; the date range applies to orders."""
    users_row = (await db.execute(
        select(
            func.count(User.id),
            func.sum(case((User.is_active.is_(True), 1), else_=0)),
            func.sum(case((User.role == UserRole.ADMIN, 1), else_=0)),
        )
    )).one()
    total_users = users_row[0] or 0
    active_users = int(users_row[1] or 0)

    low_stock = settings.LOW_STOCK_THRESHOLD
    products_row = (await db.execute(
        select(
            func.count(Product.id),
            func.coalesce(func.sum(Product.stock_quantity), 0),
            func.sum(case(((Product.stock_quantity > 0) & (Product.stock_quantity <= low_stock), 1), else_=0)),
            func.sum(case((Product.stock_quantity == 0, 1), else_=0)),
            func.avg(Product.price),
        ).where(Product.is_active.is_(True))
    )).one()

    order_filters = []
    if start_date:
        order_filters.append(Order.created_at >= start_date)
    if end_date:
        order_filters.append(Order.created_at <= end_date)

    result = await db.execute(
        select(Order.order_status, func.count(Order.id), func.coalesce(func.sum(Order.total), 0))
        .where(*order_filters)
        .group_by(Order.order_status)
    )
    status_counts = {s.value: 0 for s in OrderStatus}
    total_orders = 0
    revenue = 0.0
    for order_status, count, amount in result.all():
        status_counts[order_status.value] = count
        total_orders += count
        if order_status != OrderStatus.CANCELLED:
            revenue += float(amount)

    billable = total_orders - status_counts[OrderStatus.CANCELLED.value]
    return {
        "users": {
            "total": total_users,
            "active": active_users,
            "inactive": total_users - active_users,
            "admins": int(users_row[2] or 0),
        },
        "products": {
            "total": products_row[0] or 0,
            "total_stock": int(products_row[1] or 0),
            "low_stock": int(products_row[2] or 0),
            "out_of_stock": int(products_row[3] or 0),
            "average_price": round(float(products_row[4] or 0), 2),
        },
        "orders": {
            "total": total_orders,
            "total_revenue": round(revenue, 2),
            "average_order_value": round(revenue / billable, 2) if billable else 0.0,
            "status_counts": status_counts,
        },
    }


@router.get("/analytics/revenue", response_model=RevenueAnalytics)
async def revenue_analytics(
    period: RevenuePeriod = RevenuePeriod.MONTH,
    db: AsyncSession = Depends(get_db),
):
    """Daily revenue and order counts for the period, cancelled orders excluded."""
    start = datetime.utcnow() - timedelta(days=PERIOD_DAYS[period])
    day = func.date(Order.created_at)

    result = await db.execute(
        select(day, func.coalesce(func.sum(Order.total), 0), func.count(Order.id))
        .where(Order.created_at >= start, Order.order_status != OrderStatus.CANCELLED)
        .group_by(day)
        .order_by(day)
    )

    data = []
    for bucket, revenue, orders in result.all():
        # SQLite hands back ISO strings, PostgreSQL hands back dates
        bucket_date = bucket if isinstance(bucket, date) else date.fromisoformat(str(bucket))
        data.append({"date": bucket_date, "revenue": round(float(revenue), 2), "orders": orders})

    return {
        "period": period.value,
        "start_date": start,
        "total_revenue": round(sum(point["revenue"] for point in data), 2),
        "total_orders": sum(point["orders"] for point in data),
        "data": data,
    }


@router.get("/activity-logs", response_model=Page[ActivityLogResponse])
async def activity_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    action: Optional[ActivityAction] = None,
    resource: Optional[ActivityResource] = None,
    user_id: Optional[int] = None,
    log_status: Optional[ActivityStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
):
    query = select(ActivityLog)
    if action:
        query = query.where(ActivityLog.action == action)
    if resource:
        query = query.where(ActivityLog.resource == resource)
    if user_id:
        query = query.where(ActivityLog.user_id == user_id)
    if log_status:
        query = query.where(ActivityLog.status == log_status)
    if start_date:
        query = query.where(ActivityLog.created_at >= start_date)
    if end_date:
        query = query.where(ActivityLog.created_at <= end_date)
    query = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())

    logs, total = await paginate(db, query, page, page_size)
    return Page[ActivityLogResponse].build(logs, total, page, page_size)
