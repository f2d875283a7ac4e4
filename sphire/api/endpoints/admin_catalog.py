"""Admin catalog management: the full product list and managed categories."""
from typing import Optional, List
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.api.endpoints.categories import active_product_counts
from sphire.api.endpoints.products import SORT_ORDER, ProductSort, filter_products
from sphire.api.utils import paginate
from sphire.core.config import settings
from sphire.core.database import get_db
from sphire.core.redis import get_redis, RedisClient
from sphire.core.security import get_current_admin
from sphire.models.activity_log import ActivityAction, ActivityResource
from sphire.models.product import Category, Product
from sphire.models.user import User
from sphire.schemas.common import Message, Page
from sphire.schemas.product import (
    CategoryCreate, CategoryResponse, CategoryTreeNode, CategoryUpdate, ProductResponse
)
from sphire.services.activity import log_activity
from sphire.services.catalog import build_category_tree, invalidate_catalog_cache, slugify

logger = structlog.get_logger()

router = APIRouter()


@router.get("/products", response_model=Page[ProductResponse])
async def list_all_products(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    in_stock: Optional[bool] = None,
    featured: Optional[bool] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort: ProductSort = ProductSort.NEWEST,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Every product, deactivated ones included unless filtered out."""
    query = filter_products(
        select(Product),
        category=category,
        subcategory=subcategory,
        in_stock=in_stock,
        featured=featured,
        search=search,
    )
    if is_active is not None:
        query = query.where(Product.is_active.is_(is_active))
    query = query.order_by(*SORT_ORDER[sort], Product.id.desc())

    products, total = await paginate(db, query, page, page_size)
    return Page[ProductResponse].build(products, total, page, page_size)


async def get_category_or_404(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if not category:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found",
        )
    return category


async def ensure_category_unique(
    db: AsyncSession, name: str, slug: str, exclude_id: Optional[int] = None
) -> None:
    query = select(Category.id).where(
        (func.lower(Category.name) == name.lower()) | (Category.slug == slug)
    )
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if (await db.execute(query)).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Category with this name already exists",
        )


async def ensure_parent_exists(db: AsyncSession, parent_id: Optional[int], category_id: Optional[int] = None) -> None:
    if parent_id is None:
        return
    if parent_id == category_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A category cannot be its own parent",
        )
    parent = await db.get(Category, parent_id)
    if not parent:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Parent category not found",
        )
    if category_id is None:
        return

    # Walk up from the new parent; meeting the category itself closes a loop
    seen = set()
    while parent is not None and parent.id not in seen:
        if parent.id == category_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A category cannot be nested under its own subcategory",
            )
        seen.add(parent.id)
        parent = await db.get(Category, parent.parent_id) if parent.parent_id else None


def with_count(category: Category, counts: dict[str, int]) -> CategoryResponse:
    item = CategoryResponse.model_validate(category)
    item.product_count = counts.get(category.slug, 0)
    return item


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(
    search: Optional[str] = Query(None, max_length=100),
    is_active: Optional[bool] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    query = select(Category)
    if search:
        query = query.where(
            Category.name.ilike(f"%{search}%") | Category.description.ilike(f"%{search}%")
        )
    if is_active is not None:
        query = query.where(Category.is_active.is_(is_active))
    result = await db.execute(query.order_by(Category.sort_order, Category.name))

    counts = await active_product_counts(db)
    return [with_count(category, counts) for category in result.scalars().all()]


@router.get("/categories/tree", response_model=List[CategoryTreeNode])
async def category_tree(
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """All categories, inactive included, nested under their parents."""
    result = await db.execute(select(Category).order_by(Category.sort_order, Category.name))
    return build_category_tree(result.scalars().all(), await active_product_counts(db))


@router.get("/categories/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    category = await get_category_or_404(db, category_id)
    return with_count(category, await active_product_counts(db))


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: CategoryCreate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
):
    slug = slugify(category_data.name)
    if not slug:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Category name must contain letters or digits",
        )
    await ensure_category_unique(db, category_data.name, slug)
    await ensure_parent_exists(db, category_data.parent_id)

    category = Category(**category_data.model_dump(), slug=slug)
    db.add(category)
    await db.flush()

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.CREATE,
        resource=ActivityResource.CATEGORY,
        resource_id=category.id,
        description=f"Created category {category.name}",
        request=request,
    )
    await db.commit()
    await invalidate_catalog_cache(redis)

    logger.info("category_created", category_id=category.id, slug=slug)
    return category


@router.put("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    category_data: CategoryUpdate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
):
    """Edit a category; renaming regenerates its slug and moves its products along."""
    category = await get_category_or_404(db, category_id)
    old_slug = category.slug
    changes = category_data.model_dump(exclude_unset=True)
    for field in ("name", "is_active", "sort_order"):
        if changes.get(field, 0) is None:
            changes.pop(field)

    if "name" in changes and changes["name"] != category.name:
        slug = slugify(changes["name"])
        if not slug:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Category name must contain letters or digits",
            )
        await ensure_category_unique(db, changes["name"], slug, exclude_id=category.id)
        changes["slug"] = slug
    if "parent_id" in changes:
        await ensure_parent_exists(db, changes["parent_id"], category.id)

    for field, value in changes.items():
        setattr(category, field, value)

    if category.slug != old_slug:
        await db.execute(
            update(Product).where(Product.category == old_slug).values(category=category.slug)
        )
        await db.execute(
            update(Product).where(Product.subcategory == old_slug).values(subcategory=category.slug)
        )
        logger.info("category_slug_changed", category_id=category.id, old=old_slug, new=category.slug)

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.UPDATE,
        resource=ActivityResource.CATEGORY,
        resource_id=category.id,
        description=f"Updated category {category.name}",
        details={"fields": sorted(changes)},
        request=request,
    )
    await db.commit()
    await invalidate_catalog_cache(redis)

    return with_count(category, await active_product_counts(db))


@router.delete("/categories/{category_id}", response_model=Message)
async def delete_category(
    category_id: int,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
):
    """Delete a category that no product or child category uses."""
    category = await get_category_or_404(db, category_id)

    product_count = (await db.execute(
        select(func.count(Product.id)).where(Product.category == category.slug)
    )).scalar() or 0
    if product_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot delete category with {product_count} products",
        )

    child_count = (await db.execute(
        select(func.count(Category.id)).where(Category.parent_id == category.id)
    )).scalar() or 0
    if child_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete category with subcategories",
        )

    await db.delete(category)
    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.DELETE,
        resource=ActivityResource.CATEGORY,
        resource_id=category_id,
        description=f"Deleted category {category.name}",
        request=request,
    )
    await db.commit()
    await invalidate_catalog_cache(redis)

    return {"message": "Category deleted successfully"}
