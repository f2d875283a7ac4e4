"""Product catalog endpoints."""
from enum import Enum
from typing import Optional, List
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.api.utils import paginate
from sphire.core.config import settings
from sphire.core.database import get_db
from sphire.core.redis import get_redis, RedisClient
from sphire.core.security import get_current_admin
from sphire.models.activity_log import ActivityAction, ActivityResource
from sphire.models.product import Product
from sphire.models.user import User
from sphire.schemas.common import Page
from sphire.schemas.product import (
    CategorySummary, ProductCreate, ProductDetail, ProductResponse, ProductUpdate
)
from sphire.services.activity import log_activity
from sphire.services.catalog import (
    CATEGORIES_CACHE_KEY, FEATURED_CACHE_KEY, FEATURED_CACHE_SIZE, invalidate_catalog_cache
)

logger = structlog.get_logger()

router = APIRouter()


class ProductSort(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    RATING_DESC = "rating_desc"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"


CLEARABLE_FIELDS = {
    "original_price", "subcategory", "how_to_use", "weight",
    "sale_start_date", "sale_end_date", "seo_title", "seo_description",
}

SORT_ORDER = {
    ProductSort.NEWEST: (Product.created_at.desc(),),
    ProductSort.OLDEST: (Product.created_at.asc(),),
    ProductSort.PRICE_ASC: (Product.price.asc(),),
    ProductSort.PRICE_DESC: (Product.price.desc(),),
    ProductSort.RATING_DESC: (Product.rating.desc(), Product.review_count.desc()),
    ProductSort.NAME_ASC: (Product.name.asc(),),
    ProductSort.NAME_DESC: (Product.name.desc(),),
}


def filter_products(
    query,
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    in_stock: Optional[bool] = None,
    featured: Optional[bool] = None,
    search: Optional[str] = None,
):
    """Apply the storefront filters shared by the public and admin listings."""
    if category:
        query = query.where(Product.category == category.lower())
    if subcategory:
        query = query.where(Product.subcategory == subcategory.lower())
    if min_price is not None:
        query = query.where(Product.price >= min_price)
    if max_price is not None:
        query = query.where(Product.price <= max_price)
    if in_stock is not None:
        query = query.where(Product.in_stock.is_(in_stock))
    if featured is not None:
        query = query.where(Product.is_featured.is_(featured))
    if search:
        query = query.where(
            Product.name.ilike(f"%{search}%") | Product.description.ilike(f"%{search}%")
        )
    return query


async def get_product_or_404(db: AsyncSession, product_id: int) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    return product


@router.get("", response_model=Page[ProductResponse])
async def list_products(
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=settings.MAX_PAGE_SIZE),
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    in_stock: Optional[bool] = None,
    featured: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort: ProductSort = ProductSort.NEWEST,
    db: AsyncSession = Depends(get_db),
):
    """List active products with filters, sorting and pagination."""
    query = select(Product).where(Product.is_active.is_(True))
    query = filter_products(
        query, category, subcategory, min_price, max_price, in_stock, featured, search
    )
    query = query.order_by(*SORT_ORDER[sort], Product.id.desc())

    products, total = await paginate(db, query, page, page_size)
    return Page[ProductResponse].build(products, total, page, page_size)


@router.get("/featured", response_model=List[ProductResponse])
async def featured_products(
    limit: int = Query(8, ge=1, le=FEATURED_CACHE_SIZE),
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
):
    """Featured, in-stock products, newest first."""
    cached = await redis.get(FEATURED_CACHE_KEY)
    if cached is not None:
        return cached[:limit]

    result = await db.execute(
        select(Product)
        .where(
            Product.is_active.is_(True),
            Product.is_featured.is_(True),
            Product.in_stock.is_(True),
        )
        .order_by(Product.created_at.desc(), Product.id.desc())
        .limit(FEATURED_CACHE_SIZE)
    )
    products = [
        ProductResponse.model_validate(p).model_dump(mode="json")
        for p in result.scalars().all()
    ]
    await redis.set(FEATURED_CACHE_KEY, products, expire=settings.CACHE_TTL_SECONDS)
    return products[:limit]


@router.get("/categories", response_model=List[CategorySummary])
async def product_categories(
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
):
    """Categories in use with their subcategories and active product counts."""
    cached = await redis.get(CATEGORIES_CACHE_KEY)
    if cached is not None:
        return cached

    result = await db.execute(
        select(Product.category, Product.subcategory, func.count(Product.id))
        .where(Product.is_active.is_(True))
        .group_by(Product.category, Product.subcategory)
    )

    summary: dict[str, dict] = {}
    for category, subcategory, count in result.all():
        entry = summary.setdefault(category, {"category": category, "subcategories": set(), "count": 0})
        entry["count"] += count
        if subcategory:
            entry["subcategories"].add(subcategory)

    categories = sorted(
        (
            {**entry, "subcategories": sorted(entry["subcategories"])}
            for entry in summary.values()
        ),
        key=lambda entry: (-entry["count"], entry["category"]),
    )
    await redis.set(CATEGORIES_CACHE_KEY, categories, expire=settings.CACHE_TTL_SECONDS)
    return categories


@router.get("/{product_id}", response_model=ProductDetail)
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get an active product with up to four related products."""
    product = await db.get(Product, product_id)

    if not product or not product.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )

    result = await db.execute(
        select(Product)
        .where(
            Product.category == product.category,
            Product.id != product.id,
            Product.is_active.is_(True),
        )
        .order_by(Product.created_at.desc(), Product.id.desc())
        .limit(4)
    )

    detail = ProductDetail.model_validate(product)
    detail.related_products = [ProductResponse.model_validate(p) for p in result.scalars().all()]
    return detail


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
):
    """Create a product (admin)."""
    product = Product(**product_data.model_dump())
    product.in_stock = product.stock_quantity > 0
    db.add(product)
    await db.flush()

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.CREATE,
        resource=ActivityResource.PRODUCT,
        resource_id=product.id,
        description=f"Created product {product.name}",
        request=request,
    )
    await db.commit()
    await invalidate_catalog_cache(redis)

    logger.info("product_created", product_id=product.id, admin_id=admin.id)
    return product


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    product_data: ProductUpdate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
):
    """Update a product (admin)."""
    product = await get_product_or_404(db, product_id)

    changes = {
        field: value
        for field, value in product_data.model_dump(exclude_unset=True).items()
        if value is not None or field in CLEARABLE_FIELDS
    }
    for field, value in changes.items():
        setattr(product, field, value)
    if "stock_quantity" in changes:
        product.update_stock(0)

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.UPDATE,
        resource=ActivityResource.PRODUCT,
        resource_id=product.id,
        description=f"Updated product {product.name}",
        details={"fields": sorted(changes)},
        request=request,
    )
    await db.commit()
    await invalidate_catalog_cache(redis)

    return product


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
):
    """Deactivate a product (soft delete, admin)."""
    product = await get_product_or_404(db, product_id)
    product.is_active = False

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.DELETE,
        resource=ActivityResource.PRODUCT,
        resource_id=product.id,
        description=f"Deactivated product {product.name}",
        request=request,
    )
    await db.commit()
    await invalidate_catalog_cache(redis)
