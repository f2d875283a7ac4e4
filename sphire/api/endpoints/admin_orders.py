"""Admin order management."""
from typing import Optional
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sphire.api.utils import paginate
from sphire.core.config import settings
from sphire.core.database import get_db
from sphire.core.redis import get_redis, RedisClient
from sphire.core.security import get_current_admin
from sphire.models.activity_log import ActivityAction, ActivityResource
from sphire.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from sphire.models.user import User
from sphire.schemas.common import Message, Page
from sphire.schemas.order import AdminOrderResponse, OrderStatusUpdate
from sphire.services.activity import log_activity
from sphire.services.catalog import invalidate_catalog_cache
from sphire.services.email import EmailService, get_email_service
from sphire.services.orders import restore_stock

logger = structlog.get_logger()

router = APIRouter()


async def get_order_with_customer(db: AsyncSession, order_id: int) -> Order:
    result = await db.execute(
        select(Order).options(selectinload(Order.user)).where(Order.id == order_id)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found",
        )
    return order


@router.get("/orders", response_model=Page[AdminOrderResponse])
async def list_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """All orders, filterable by status and searchable by order number or item name."""
    query = select(Order).options(selectinload(Order.user))
    if order_status:
        query = query.where(Order.order_status == order_status)
    if payment_status:
        query = query.where(Order.payment_status == payment_status)
    if search:
        matching_items = select(OrderItem.order_id).where(OrderItem.name.ilike(f"%{search}%"))
        query = query.where(
            Order.order_number.ilike(f"%{search}%") | Order.id.in_(matching_items)
        )
    query = query.order_by(Order.created_at.desc(), Order.id.desc())

    orders, total = await paginate(db, query, page, page_size)
    return Page[AdminOrderResponse].build(orders, total, page, page_size)


@router.get("/orders/{order_id}", response_model=AdminOrderResponse)
async def get_order(
    order_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return await get_order_with_customer(db, order_id)


@router.put("/orders/{order_id}/status", response_model=AdminOrderResponse)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
    email: EmailService = Depends(get_email_service),
):
    """
    Move an order through fulfilment.

    A tracking number marks the order shipped. Cancelling returns the stock,
    so a cancelled order is final and cannot be moved again.
    """
    order = await get_order_with_customer(db, order_id)
    previous = order.order_status

    reopening = payload.status not in (None, OrderStatus.CANCELLED) or payload.tracking_number
    if previous == OrderStatus.CANCELLED and reopening:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cancelled orders cannot change status",
        )

    restocked = payload.status == OrderStatus.CANCELLED and previous != OrderStatus.CANCELLED
    if payload.status is not None:
        if restocked:
            await restore_stock(db, order)
        order.update_status(payload.status, payload.admin_notes)
    elif payload.admin_notes:
        order.admin_notes = payload.admin_notes

    if payload.tracking_number:
        order.add_tracking_number(payload.tracking_number)
    if payload.estimated_delivery:
        order.estimated_delivery = payload.estimated_delivery

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.STATUS_CHANGE,
        resource=ActivityResource.ORDER,
        resource_id=order.id,
        description=f"Order {order.order_number}: {previous.value} -> {order.order_status.value}",
        details={
            "from": previous.value,
            "to": order.order_status.value,
            "tracking_number": order.tracking_number,
        },
        request=request,
    )
    await db.commit()
    if restocked:
        await invalidate_catalog_cache(redis)

    if order.order_status != previous and order.user:
        await email.send_order_status_update(order, order.user.email, order.user.name)

    logger.info(
        "order_status_updated",
        order_id=order.id,
        previous=previous.value,
        status=order.order_status.value,
    )
    return order


@router.delete("/orders/{order_id}", response_model=Message)
async def delete_order(
    order_id: int,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
):
    """Delete a pending order, returning its stock."""
    order = await get_order_with_customer(db, order_id)

    if order.order_status != OrderStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only pending orders can be deleted",
        )

    await restore_stock(db, order)
    await db.delete(order)
    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.DELETE,
        resource=ActivityResource.ORDER,
        resource_id=order_id,
        description=f"Deleted order {order.order_number}",
        request=request,
    )
    await db.commit()
    await invalidate_catalog_cache(redis)
    return {"message": "Order deleted successfully"}
