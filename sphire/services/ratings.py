"""Product rating aggregation."""
import structlog
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.models.product import Product
from sphire.models.review import Review

logger = structlog.get_logger()


async def recalculate_product_rating(db: AsyncSession, product_id: int) -> None:
    """Recompute rating and review_count from approved, active reviews."""
    await db.flush()
    result = await db.execute(
        select(func.avg(Review.rating), func.count(Review.id)).where(
            Review.product_id == product_id,
            Review.is_approved.is_(True),
            Review.is_active.is_(True),
        )
    )
    average, count = result.one()

    product = await db.get(Product, product_id)
    if product is None:
        return

    product.rating = round(float(average), 1) if average is not None else 0.0
    product.review_count = count or 0
    logger.info(
        "product_rating_recalculated",
        product_id=product_id,
        rating=product.rating,
        review_count=product.review_count,
    )
