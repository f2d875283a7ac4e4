"""
Recompute every product's rating and review count from its approved reviews.

Run after bulk moderation or a data import:

    python -m scripts.recalculate_ratings
"""
import asyncio
import sys

from sqlalchemy import select

from sphire.core.config import settings
from sphire.core.database import engine, AsyncSessionLocal
from sphire.core.logging_config import configure_logging
from sphire.models import Product
from sphire.services.ratings import recalculate_product_rating


async def main():
    configure_logging(settings.LOG_LEVEL, fmt="console")
    print("Recalculating product ratings...")

    try:
        async with AsyncSessionLocal() as session:
            product_ids = (await session.execute(select(Product.id))).scalars().all()
            for product_id in product_ids:
                await recalculate_product_rating(session, product_id)
            await session.commit()
        print(f"✓ Updated {len(product_ids)} products")

    except Exception as e:
        print(f"✗ Error while recalculating ratings: {e}")
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
