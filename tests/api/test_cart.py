"""Shopping cart endpoints."""

import pytest

from conftest import API

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


async def add(client, headers, product_id, quantity=1):
    return await client.post(
        f"{API}/cart/add", json={"product_id": product_id, "quantity": quantity}, headers=headers
    )


class TestCart:
    async def test_requires_login(self, client):
        assert (await client.get(f"{API}/cart")).status_code == 401

    async def test_empty_cart(self, client, user_headers):
        response = await client.get(f"{API}/cart", headers=user_headers)

        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0.0, "item_count": 0}

    async def test_add_item(self, client, user_headers, create_product):
        product = await create_product(price=12.5)

        response = await add(client, user_headers, product["id"], 2)

        assert response.status_code == 200
        data = response.json()
        assert data["item_count"] == 2
        assert data["total"] == 25.0
        assert data["items"][0]["product"]["name"] == product["name"]
        assert data["items"][0]["subtotal"] == 25.0

    async def test_adding_again_merges_quantity(self, client, user_headers, create_product):
        product = await create_product()

        await add(client, user_headers, product["id"], 2)
        response = await add(client, user_headers, product["id"], 3)

        assert len(response.json()["items"]) == 1
        assert response.json()["items"][0]["quantity"] == 5

    async def test_cannot_exceed_stock(self, client, user_headers, create_product):
        product = await create_product(stock_quantity=3)
        await add(client, user_headers, product["id"], 2)

        response = await add(client, user_headers, product["id"], 2)

        assert response.status_code == 400
        assert response.json()["detail"] == "Only 3 items available in stock"

    async def test_unknown_product(self, client, user_headers):
        response = await add(client, user_headers, 999)

        assert response.status_code == 404

    async def test_inactive_product(self, client, user_headers, create_product):
        product = await create_product(is_active=False)

        response = await add(client, user_headers, product["id"])

        assert response.status_code == 400
        assert response.json()["detail"] == "Product is not available"

    async def test_quantity_over_limit_rejected(self, client, user_headers, create_product):
        product = await create_product(stock_quantity=500)

        response = await add(client, user_headers, product["id"], 101)

        assert response.status_code == 422

    async def test_update_quantity(self, client, user_headers, create_product):
        product = await create_product()
        await add(client, user_headers, product["id"], 1)

        response = await client.put(
            f"{API}/cart/update/{product['id']}", json={"quantity": 4}, headers=user_headers
        )

        assert response.status_code == 200
        assert response.json()["item_count"] == 4

    async def test_update_to_zero_removes(self, client, user_headers, create_product):
        product = await create_product()
        await add(client, user_headers, product["id"], 1)

        response = await client.put(
            f"{API}/cart/update/{product['id']}", json={"quantity": 0}, headers=user_headers
        )

        assert response.json()["items"] == []

    async def test_update_missing_item(self, client, user_headers, create_product):
        product = await create_product()

        response = await client.put(
            f"{API}/cart/update/{product['id']}", json={"quantity": 2}, headers=user_headers
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Item not found in cart"

    async def test_remove_and_count(self, client, user_headers, create_product):
        first = await create_product(name="First")
        second = await create_product(name="Second")
        await add(client, user_headers, first["id"], 2)
        await add(client, user_headers, second["id"], 3)

        response = await client.delete(f"{API}/cart/remove/{first['id']}", headers=user_headers)
        assert response.status_code == 200

        count = await client.get(f"{API}/cart/count", headers=user_headers)
        assert count.json() == {"count": 3}

    async def test_clear(self, client, user_headers, create_product):
        product = await create_product()
        await add(client, user_headers, product["id"], 2)

        response = await client.delete(f"{API}/cart/clear", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["item_count"] == 0


class TestCartSync:
    async def test_sync_replaces_cart(self, client, user_headers, create_product):
        kept = await create_product(name="Kept", stock_quantity=10)
        dropped = await create_product(name="Dropped")
        await add(client, user_headers, dropped["id"], 1)

        response = await client.post(
            f"{API}/cart/sync",
            json={"items": [{"product_id": kept["id"], "quantity": 2}]},
            headers=user_headers,
        )

        assert response.status_code == 200
        assert [(i["product_id"], i["quantity"]) for i in response.json()["items"]] == [(kept["id"], 2)]

    async def test_sync_merges_caps_and_skips(self, client, user_headers, create_product):
        scarce = await create_product(name="Scarce", stock_quantity=4)
        sold_out = await create_product(name="Sold Out", stock_quantity=0)

        response = await client.post(
            f"{API}/cart/sync",
            json={"items": [
                {"product_id": scarce["id"], "quantity": 3},
                {"product_id": scarce["id"], "quantity": 3},
                {"product_id": sold_out["id"], "quantity": 1},
                {"product_id": 999, "quantity": 1},
            ]},
            headers=user_headers,
        )

        items = response.json()["items"]
        assert [(i["product_id"], i["quantity"]) for i in items] == [(scarce["id"], 4)]

    async def test_sync_keeps_same_product(self, client, user_headers, create_product):
        product = await create_product()
        await add(client, user_headers, product["id"], 1)

        response = await client.post(
            f"{API}/cart/sync",
            json={"items": [{"product_id": product["id"], "quantity": 5}]},
            headers=user_headers,
        )

        assert response.status_code == 200
        assert response.json()["item_count"] == 5
