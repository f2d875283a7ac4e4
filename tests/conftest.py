"""Shared fixtures for the API and unit tests.

The app runs against a throwaway SQLite database with Redis left
disconnected, so caching and login throttling are no-ops unless a test
overrides ``get_redis``. Email is disabled through an empty Resend key.
"""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="sphire-tests-")

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["METRICS_ENABLED"] = "false"
os.environ["RESEND_API_KEY"] = ""
os.environ["LOG_FORMAT"] = "text"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import sphire.models  # noqa: F401
from sphire.core.database import AsyncSessionLocal, Base, engine
from sphire.core.security import get_password_hash
from sphire.main import app
from sphire.models.user import User, UserRole

API = "/api/v1"

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass1"
SHOPPER_PASSWORD = "secret123"


# =============================================================================
# Database and client
# =============================================================================


@pytest_asyncio.fixture
async def database():
    """Fresh schema for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    """Session for arranging or inspecting rows directly."""
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client(database):
    """HTTP client bound to the app, without running its lifespan."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# =============================================================================
# Accounts
# =============================================================================


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register_user(client):
    """Register a shopper and return the auth response body."""

    async def _register(email: str = "shopper@example.com", name: str = "Test Shopper",
                        password: str = SHOPPER_PASSWORD) -> dict:
        response = await client.post(
            f"{API}/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest_asyncio.fixture
async def user_headers(register_user):
    body = await register_user()
    return bearer(body["access_token"])


@pytest_asyncio.fixture
async def other_user_headers(register_user):
    body = await register_user(email="other@example.com", name="Other Shopper")
    return bearer(body["access_token"])


@pytest_asyncio.fixture
async def admin_headers(client):
    """Seed an admin account and sign it in."""
    async with AsyncSessionLocal() as session:
        session.add(User(
            name="Store Admin",
            email=ADMIN_EMAIL,
            hashed_password=get_password_hash(ADMIN_PASSWORD),
            role=UserRole.ADMIN,
            addresses=[],
        ))
        await session.commit()

    response = await client.post(
        f"{API}/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200, response.text
    return bearer(response.json()["access_token"])


# =============================================================================
# Catalog and checkout
# =============================================================================


SHIPPING_ADDRESS = {
    "street": "12 Garden Road",
    "city": "Lahore",
    "state": "Punjab",
    "zip_code": "54000",
    "country": "Pakistan",
}


@pytest.fixture
def create_product(client, admin_headers):
    """Create a product through the admin API and return its JSON."""

    async def _create(**overrides) -> dict:
        payload = {
            "name": "Rose Face Serum",
            "description": "Hydrating serum with rosehip oil.",
            "price": 30.0,
            "category": "skincare",
            "stock_quantity": 20,
        }
        payload.update(overrides)
        response = await client.post(f"{API}/products", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def place_order(client):
    """Fill the cart with ``(product_id, quantity)`` lines and check out."""

    async def _place(headers: dict, lines, **order_fields) -> dict:
        for product_id, quantity in lines:
            response = await client.post(
                f"{API}/cart/add",
                json={"product_id": product_id, "quantity": quantity},
                headers=headers,
            )
            assert response.status_code == 200, response.text

        payload = {"shipping_address": SHIPPING_ADDRESS, **order_fields}
        response = await client.post(f"{API}/orders", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _place
