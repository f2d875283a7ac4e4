"""
Checkout: turning a cart into an order.
"""
import secrets
import time
from dataclasses import dataclass
from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.core.config import settings
from sphire.models.cart import Cart
from sphire.models.order import Order, OrderItem, PaymentMethod
from sphire.models.product import Product

logger = structlog.get_logger()

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_order_number(now_ms: Optional[int] = None) -> str:
    """ORD-<base36 millisecond timestamp>-<5 random base36 chars>, upper case."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(5))
    return f"ORD-{to_base36(now_ms)}-{suffix}".upper()


@dataclass
class OrderTotals:
    subtotal: float
    shipping_cost: float
    tax: float
    total: float


def calculate_totals(subtotal: float) -> OrderTotals:
    """Shipping is free strictly above the threshold, tax applies to the subtotal only."""
    subtotal = round(subtotal, 2)
    shipping = 0.0 if subtotal > settings.FREE_SHIPPING_THRESHOLD else settings.FLAT_SHIPPING_COST
    tax = round(subtotal * settings.TAX_RATE, 2)
    return OrderTotals(
        subtotal=subtotal,
        shipping_cost=shipping,
        tax=tax,
        total=round(subtotal + shipping + tax, 2),
    )


class CheckoutError(Exception):
    """Raised when a cart cannot be turned into an order."""

    def __init__(self, message: str, unavailable_items: Optional[List[dict]] = None):
        super().__init__(message)
        self.message = message
        self.unavailable_items = unavailable_items or []


async def place_order(
    db: AsyncSession,
    *,
    user_id: int,
    cart: Optional[Cart],
    shipping_address: dict,
    payment_method: PaymentMethod = PaymentMethod.COD,
    notes: Optional[str] = None,
) -> Order:
    """
    Create an order from the user's cart inside the caller's transaction.

    Products are locked, checked, decremented and the cart emptied before the
    flush, so either all of it is persisted or none of it.

    Raises:
        CheckoutError: cart is empty or some items can't be fulfilled
    """
    if cart is None or not cart.items:
        raise CheckoutError("Cart is empty")

    product_ids = [item.product_id for item in cart.items]
    result = await db.execute(
        select(Product)
        .where(Product.id.in_(product_ids))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    products = {p.id: p for p in result.scalars().all()}

    unavailable = []
    for item in cart.items:
        product = products.get(item.product_id)
        if product is None or not product.is_available or product.stock_quantity < item.quantity:
            unavailable.append({
                "product": product.name if product else f"Product {item.product_id}",
                "requested": item.quantity,
                "available": product.stock_quantity if product and product.is_active else 0,
            })
    if unavailable:
        raise CheckoutError("Some items are no longer available", unavailable)

    totals = calculate_totals(cart.total)

    order = Order(
        order_number=generate_order_number(),
        user_id=user_id,
        shipping_address=shipping_address,
        payment_method=payment_method,
        notes=notes,
        subtotal=totals.subtotal,
        shipping_cost=totals.shipping_cost,
        tax=totals.tax,
        total=totals.total,
        items=[
            OrderItem(
                product_id=item.product_id,
                name=products[item.product_id].name,
                price=item.price,
                quantity=item.quantity,
                image=products[item.product_id].primary_image,
            )
            for item in cart.items
        ],
    )
    db.add(order)

    for item in cart.items:
        products[item.product_id].update_stock(-item.quantity)

    cart.items.clear()
    cart.touch()
    await db.flush()

    logger.info(
        "order_placed",
        order_id=order.id,
        order_number=order.order_number,
        user_id=user_id,
        total=order.total,
    )
    return order


async def restore_stock(db: AsyncSession, order: Order) -> None:
    """Put the quantities of a cancelled order back on the shelf."""
    product_ids = [item.product_id for item in order.items if item.product_id]
    if not product_ids:
        return
    result = await db.execute(
        select(Product)
        .where(Product.id.in_(product_ids))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    products = {p.id: p for p in result.scalars().all()}
    for item in order.items:
        product = products.get(item.product_id)
        if product:
            product.update_stock(item.quantity)
