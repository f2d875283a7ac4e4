"""
Database initialization script.
Creates tables and seeds categories, an admin account, sample products and
the default store settings.

    python -m scripts.init_db [--reset]
"""
import asyncio
import os
import sys

from sqlalchemy import select

from sphire.core.database import engine, AsyncSessionLocal, Base
from sphire.core.security import get_password_hash
from sphire.models import Category, Product, StoreSettings, User, UserRole
from sphire.services.catalog import slugify

ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@sphire.store")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin123!")

CATEGORIES = [
    {"name": "Skincare", "description": "Cleansers, serums and moisturisers", "sort_order": 1},
    {"name": "Makeup", "description": "Face, eyes and lips", "sort_order": 2},
    {"name": "Haircare", "description": "Shampoos, oils and treatments", "sort_order": 3},
    {"name": "Fragrance", "description": "Perfumes and body mists", "sort_order": 4},
    {"name": "Bath & Body", "description": "Washes, scrubs and lotions", "sort_order": 5},
]

PRODUCTS = [
    {
        "name": "Vitamin C Brightening Serum",
        "description": "Lightweight serum with 15% vitamin C for an even, radiant tone.",
        "price": 45.0,
        "original_price": 55.0,
        "category": "skincare",
        "subcategory": "serums",
        "stock_quantity": 120,
        "skin_type": ["normal", "dry", "combination"],
        "is_featured": True,
        "is_on_sale": True,
    },
    {
        "name": "Hydrating Gel Cleanser",
        "description": "Gentle daily cleanser that removes makeup without stripping the skin.",
        "price": 22.0,
        "category": "skincare",
        "subcategory": "cleansers",
        "stock_quantity": 200,
        "skin_type": ["all"],
        "is_new": True,
    },
    {
        "name": "Velvet Matte Lipstick",
        "description": "Long-wearing matte lipstick with a soft, comfortable finish.",
        "price": 18.0,
        "category": "makeup",
        "subcategory": "lips",
        "stock_quantity": 8,
        "is_featured": True,
    },
    {
        "name": "Argan Repair Hair Oil",
        "description": "Nourishing oil that tames frizz and restores shine to dry hair.",
        "price": 30.0,
        "category": "haircare",
        "subcategory": "treatments",
        "stock_quantity": 60,
    },
    {
        "name": "Oud Noir Eau de Parfum",
        "description": "Warm woody fragrance with notes of oud, amber and vanilla.",
        "price": 120.0,
        "category": "fragrance",
        "stock_quantity": 25,
        "is_featured": True,
    },
]


async def create_tables(reset: bool = False):
    """Create all database tables, dropping them first on reset."""
    import sphire.models  # noqa: F401

    print("Creating database tables...")
    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    print("✓ Tables created successfully")


async def create_categories():
    print("Creating categories...")

    async with AsyncSessionLocal() as session:
        existing = (await session.execute(select(Category.id))).first()
        if existing:
            print("✓ Categories already exist")
            return

        for data in CATEGORIES:
            session.add(Category(**data, slug=slugify(data["name"]), is_active=True))
        await session.commit()
        print(f"✓ Created {len(CATEGORIES)} categories")


async def create_admin_user():
    print("Creating admin user...")

    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.email == ADMIN_EMAIL))
        if result.scalar_one_or_none():
            print("✓ Admin user already exists")
            return

        session.add(User(
            name="Store Admin",
            email=ADMIN_EMAIL,
            hashed_password=get_password_hash(ADMIN_PASSWORD),
            role=UserRole.ADMIN,
            is_active=True,
            email_verified=True,
            addresses=[],
        ))
        await session.commit()
        print(f"✓ Admin user created (email: {ADMIN_EMAIL})")


async def create_sample_products():
    print("Creating sample products...")

    async with AsyncSessionLocal() as session:
        existing = (await session.execute(select(Product.id))).first()
        if existing:
            print("✓ Products already exist")
            return

        for data in PRODUCTS:
            product = Product(**data)
            product.update_stock(0)
            session.add(product)
        await session.commit()
        print(f"✓ Created {len(PRODUCTS)} products")


async def create_store_settings():
    print("Creating store settings...")

    async with AsyncSessionLocal() as session:
        existing = (await session.execute(select(StoreSettings.id))).first()
        if existing:
            print("✓ Store settings already exist")
            return

        session.add(StoreSettings(is_active=True))
        await session.commit()
        print("✓ Default store settings created")


async def main(reset: bool = False):
    print("=" * 60)
    print("Sphire Store Database Initialization")
    print("=" * 60)

    try:
        await create_tables(reset)
        await create_categories()
        await create_admin_user()
        await create_sample_products()
        await create_store_settings()

        print("=" * 60)
        print("✓ Database initialization completed successfully!")
        print("=" * 60)

    except Exception as e:
        print(f"✗ Error during initialization: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main(reset="--reset" in sys.argv[1:]))
