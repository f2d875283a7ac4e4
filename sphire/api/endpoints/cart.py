"""Shopping cart endpoints."""
from typing import Optional
import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.core.database import get_db
from sphire.core.security import get_current_user_id
from sphire.models.cart import Cart, CartItem
from sphire.models.product import Product
from sphire.schemas.cart import CartCount, CartItemAdd, CartItemUpdate, CartResponse, CartSync

logger = structlog.get_logger()

router = APIRouter()


async def get_cart(db: AsyncSession, user_id: int, create: bool = False) -> Optional[Cart]:
    """Load the user's cart with items and products, optionally creating it."""
    result = await db.execute(select(Cart).where(Cart.user_id == user_id))
    cart = result.scalar_one_or_none()

    if cart is None and create:
        cart = Cart(user_id=user_id, items=[])
        db.add(cart)
        await db.flush()

    return cart


def check_stock(product: Optional[Product], quantity: int) -> Product:
    """Raise unless ``quantity`` units of ``product`` can be sold."""
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    if not product.is_available:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Product is not available",
        )
    if product.stock_quantity < quantity:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only {product.stock_quantity} items available in stock",
        )
    return product


@router.get("", response_model=CartResponse)
async def view_cart(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get the cart; an empty one when the user has none yet."""
    cart = await get_cart(db, user_id)
    if cart is None:
        return CartResponse()
    return cart


@router.post("/add", response_model=CartResponse)
async def add_to_cart(
    item_data: CartItemAdd,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Add a product, or increase its quantity when it is already in the cart."""
    product = await db.get(Product, item_data.product_id)
    cart = await get_cart(db, user_id, create=True)

    item = cart.find_item(item_data.product_id)
    requested = item_data.quantity + (item.quantity if item else 0)
    check_stock(product, requested)

    if requested > 100:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot add more than 100 of one product",
        )

    if item:
        item.quantity = requested
    else:
        cart.items.append(
            CartItem(product_id=product.id, product=product, quantity=requested, price=product.price)
        )

    cart.touch()
    await db.commit()

    logger.info("cart_item_added", user_id=user_id, product_id=product.id, quantity=requested)
    return cart


@router.put("/update/{product_id}", response_model=CartResponse)
async def update_cart_item(
    product_id: int,
    item_data: CartItemUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Set an item's quantity; zero removes it."""
    cart = await get_cart(db, user_id)
    item = cart.find_item(product_id) if cart else None

    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found in cart",
        )

    if item_data.quantity == 0:
        cart.items.remove(item)
    else:
        check_stock(item.product, item_data.quantity)
        item.quantity = item_data.quantity

    cart.touch()
    await db.commit()
    return cart


@router.delete("/remove/{product_id}", response_model=CartResponse)
async def remove_from_cart(
    product_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    cart = await get_cart(db, user_id)
    item = cart.find_item(product_id) if cart else None

    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found in cart",
        )

    cart.items.remove(item)
    cart.touch()
    await db.commit()
    return cart


@router.delete("/clear", response_model=CartResponse)
async def clear_cart(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    cart = await get_cart(db, user_id)
    if cart is None:
        return CartResponse()

    cart.items.clear()
    cart.touch()
    await db.commit()
    return cart


@router.get("/count", response_model=CartCount)
async def cart_count(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Total quantity for the header badge."""
    cart = await get_cart(db, user_id)
    return {"count": cart.item_count if cart else 0}


@router.post("/sync", response_model=CartResponse)
async def sync_cart(
    payload: CartSync,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Replace the cart with a client-side one.

    Unavailable products are skipped and quantities are capped at the stock
    on hand; duplicate lines are merged.
    """
    cart = await get_cart(db, user_id, create=True)
    cart.items.clear()
    # Old rows must be gone before lines for the same products are inserted
    await db.flush()

    wanted: dict[int, int] = {}
    for line in payload.items:
        wanted[line.product_id] = wanted.get(line.product_id, 0) + line.quantity

    skipped = []
    if wanted:
        result = await db.execute(select(Product).where(Product.id.in_(wanted)))
        products = {p.id: p for p in result.scalars().all()}

        for product_id, quantity in wanted.items():
            product = products.get(product_id)
            if product is None or not product.is_available:
                skipped.append(product_id)
                continue
            cart.items.append(
                CartItem(
                    product_id=product.id,
                    product=product,
                    quantity=min(quantity, product.stock_quantity, 100),
                    price=product.price,
                )
            )

    cart.touch()
    await db.commit()

    logger.info("cart_synced", user_id=user_id, items=len(cart.items), skipped=skipped)
    return cart
