"""Checkout and customer order endpoints."""
from typing import Optional
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.api.endpoints.cart import get_cart
from sphire.api.utils import paginate
from sphire.core.database import get_db
from sphire.core.redis import get_redis, RedisClient
from sphire.core.security import get_current_user
from sphire.models.order import CANCELLABLE_STATUSES, Order, OrderStatus
from sphire.models.user import User, UserRole
from sphire.schemas.common import Page
from sphire.schemas.order import OrderCancel, OrderCreate, OrderResponse, OrderStats, OrderTracking
from sphire.services.catalog import invalidate_catalog_cache
from sphire.services.email import EmailService, get_email_service
from sphire.services.orders import CheckoutError, place_order, restore_stock

logger = structlog.get_logger()

router = APIRouter()


async def get_order_or_404(db: AsyncSession, order_id: int) -> Order:
    order = await db.get(Order, order_id)
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found",
        )
    return order


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
    email: EmailService = Depends(get_email_service),
):
    """Place an order for everything in the cart."""
    if order_data.address_id is not None:
        address = next((a for a in user.addresses if a.id == order_data.address_id), None)
        if address is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Address not found",
            )
        shipping_address = address.snapshot()
    else:
        shipping_address = order_data.shipping_address.model_dump(mode="json")

    cart = await get_cart(db, user.id)
    try:
        order = await place_order(
            db,
            user_id=user.id,
            cart=cart,
            shipping_address=shipping_address,
            payment_method=order_data.payment_method,
            notes=order_data.notes,
        )
    except CheckoutError as e:
        detail = {"message": e.message, "unavailable_items": e.unavailable_items} if e.unavailable_items else e.message
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    await db.commit()
    await invalidate_catalog_cache(redis)

    await email.send_order_confirmation(order, user.email, user.name)
    await email.send_admin_order_notification(order, user.email, user.name)

    return order


@router.get("", response_model=Page[OrderResponse])
async def list_my_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The signed-in user's orders, newest first."""
    query = select(Order).where(Order.user_id == user.id)
    if order_status:
        query = query.where(Order.order_status == order_status)
    query = query.order_by(Order.created_at.desc(), Order.id.desc())

    orders, total = await paginate(db, query, page, page_size)
    return Page[OrderResponse].build(orders, total, page, page_size)


@router.get("/stats/summary", response_model=OrderStats)
async def my_order_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Order count, spend and per-status counts for the signed-in user."""
    result = await db.execute(
        select(Order.order_status, func.count(Order.id), func.coalesce(func.sum(Order.total), 0))
        .where(Order.user_id == user.id)
        .group_by(Order.order_status)
    )

    status_counts = {s.value: 0 for s in OrderStatus}
    total_orders = 0
    total_spent = 0.0
    for order_status, count, amount in result.all():
        status_counts[order_status.value] = count
        total_orders += count
        if order_status != OrderStatus.CANCELLED:
            total_spent += float(amount)

    return {
        "total_orders": total_orders,
        "total_spent": round(total_spent, 2),
        "average_order_value": round(total_spent / total_orders, 2) if total_orders else 0.0,
        "status_counts": status_counts,
    }


@router.get("/tracking/{order_number}", response_model=OrderTracking)
async def track_order(
    order_number: str,
    db: AsyncSession = Depends(get_db),
):
    """Public order tracking by order number."""
    result = await db.execute(
        select(Order).where(Order.order_number == order_number.strip().upper())
    )
    order = result.scalar_one_or_none()

    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found",
        )

    return order


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get an order; customers see only their own."""
    order = await get_order_or_404(db, order_id)

    if order.user_id != user.id and user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view this order",
        )

    return order


@router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    payload: Optional[OrderCancel] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
):
    """Cancel a pending or confirmed order and return its stock."""
    order = await get_order_or_404(db, order_id)

    if order.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to cancel this order",
        )

    if order.order_status not in CANCELLABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot cancel an order that is {order.order_status.value}",
        )

    reason = (payload.reason if payload else None) or "Cancelled by customer"
    order.update_status(OrderStatus.CANCELLED, reason)
    await restore_stock(db, order)
    await db.commit()
    await invalidate_catalog_cache(redis)

    logger.info("order_cancelled", order_id=order.id, user_id=user.id)
    return order
