"""Public category endpoints."""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.core.database import get_db
from sphire.models.product import Category, Product
from sphire.schemas.product import CategoryResponse, CategoryTreeNode
from sphire.services.catalog import build_category_tree

router = APIRouter()


async def active_product_counts(db: AsyncSession) -> dict[str, int]:
    """Active product count per category slug."""
    result = await db.execute(
        select(Product.category, func.count(Product.id))
        .where(Product.is_active.is_(True))
        .group_by(Product.category)
    )
    return {category: count for category, count in result.all()}


@router.get("", response_model=List[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)):
    """Active categories in display order."""
    result = await db.execute(
        select(Category)
        .where(Category.is_active.is_(True))
        .order_by(Category.sort_order, Category.name)
    )
    counts = await active_product_counts(db)

    categories = []
    for category in result.scalars().all():
        item = CategoryResponse.model_validate(category)
        item.product_count = counts.get(category.slug, 0)
        categories.append(item)
    return categories


@router.get("/tree", response_model=List[CategoryTreeNode])
async def category_tree(db: AsyncSession = Depends(get_db)):
    """Active categories nested under their parents."""
    result = await db.execute(
        select(Category)
        .where(Category.is_active.is_(True))
        .order_by(Category.sort_order, Category.name)
    )
    return build_category_tree(result.scalars().all(), await active_product_counts(db))
