"""Catalog browsing and admin product writes."""

import pytest

from conftest import API

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


class TestProductWrites:
    async def test_admin_creates_product(self, create_product):
        product = await create_product(
            name="Glow Serum", price=40.0, original_price=50.0, category="SkinCare"
        )

        assert product["category"] == "skincare"
        assert product["in_stock"] is True
        assert product["discount_percentage"] == 20
        assert product["availability_status"] == "in-stock"
        assert product["brand"] == "Sphire Premium"

    async def test_low_stock_status(self, create_product):
        product = await create_product(stock_quantity=5)

        assert product["availability_status"] == "low-stock"

    async def test_zero_stock_is_out_of_stock(self, create_product):
        product = await create_product(stock_quantity=0)

        assert product["in_stock"] is False
        assert product["availability_status"] == "out-of-stock"

    async def test_shopper_cannot_create(self, client, user_headers):
        response = await client.post(
            f"{API}/products",
            json={"name": "X", "description": "Y", "price": 1, "category": "skincare"},
            headers=user_headers,
        )

        assert response.status_code == 403

    async def test_anonymous_cannot_create(self, client):
        response = await client.post(
            f"{API}/products",
            json={"name": "X", "description": "Y", "price": 1, "category": "skincare"},
        )

        assert response.status_code == 401

    async def test_negative_price_rejected(self, client, admin_headers):
        response = await client.post(
            f"{API}/products",
            json={"name": "X", "description": "Y", "price": -1, "category": "skincare"},
            headers=admin_headers,
        )

        assert response.status_code == 422

    async def test_update_stock_recomputes_in_stock(self, client, admin_headers, create_product):
        product = await create_product()

        response = await client.put(
            f"{API}/products/{product['id']}",
            json={"stock_quantity": 0, "price": 25.0},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["in_stock"] is False
        assert data["price"] == 25.0
        assert data["name"] == product["name"]

    async def test_update_can_clear_original_price(self, client, admin_headers, create_product):
        product = await create_product(original_price=45.0)

        response = await client.put(
            f"{API}/products/{product['id']}",
            json={"original_price": None, "name": None},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["original_price"] is None
        assert response.json()["name"] == product["name"]

    async def test_update_missing_product(self, client, admin_headers):
        response = await client.put(
            f"{API}/products/999", json={"price": 1.0}, headers=admin_headers
        )

        assert response.status_code == 404

    async def test_delete_is_soft(self, client, admin_headers, create_product):
        product = await create_product()

        response = await client.delete(f"{API}/products/{product['id']}", headers=admin_headers)
        assert response.status_code == 204

        assert (await client.get(f"{API}/products/{product['id']}")).status_code == 404

        listing = await client.get(
            f"{API}/admin/products", params={"is_active": False}, headers=admin_headers
        )
        assert [p["id"] for p in listing.json()["items"]] == [product["id"]]


class TestProductListing:
    async def test_pagination_metadata(self, client, create_product):
        for i in range(3):
            await create_product(name=f"Serum {i}")

        response = await client.get(f"{API}/products", params={"page_size": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["pages"] == 2
        assert data["has_next"] is True
        assert data["has_prev"] is False
        assert len(data["items"]) == 2

    async def test_filters(self, client, create_product):
        await create_product(name="Cheap Lip Balm", price=5.0, category="makeup")
        await create_product(name="Pricey Serum", price=90.0, category="skincare")
        await create_product(name="Mid Serum", price=40.0, category="skincare")

        response = await client.get(
            f"{API}/products", params={"category": "skincare", "min_price": 50}
        )

        assert [p["name"] for p in response.json()["items"]] == ["Pricey Serum"]

    async def test_search_matches_name_and_description(self, client, create_product):
        await create_product(name="Argan Oil", description="For dry hair")
        await create_product(name="Face Mist", description="With argan extract")
        await create_product(name="Lipstick", description="Matte red")

        response = await client.get(f"{API}/products", params={"search": "argan"})

        assert response.json()["total"] == 2

    async def test_sort_by_price(self, client, create_product):
        await create_product(name="B", price=20.0)
        await create_product(name="A", price=10.0)
        await create_product(name="C", price=30.0)

        response = await client.get(f"{API}/products", params={"sort": "price_desc"})

        assert [p["price"] for p in response.json()["items"]] == [30.0, 20.0, 10.0]

    async def test_inactive_hidden(self, client, create_product):
        await create_product(name="Hidden", is_active=False)
        await create_product(name="Shown")

        response = await client.get(f"{API}/products")

        assert [p["name"] for p in response.json()["items"]] == ["Shown"]

    async def test_featured_only_in_stock(self, client, create_product):
        await create_product(name="Featured", is_featured=True)
        await create_product(name="Featured Sold Out", is_featured=True, stock_quantity=0)
        await create_product(name="Plain")

        response = await client.get(f"{API}/products/featured")

        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Featured"]

    async def test_category_aggregate(self, client, create_product):
        await create_product(category="skincare", subcategory="serums")
        await create_product(category="skincare", subcategory="cleansers")
        await create_product(category="makeup")

        response = await client.get(f"{API}/products/categories")

        assert response.json() == [
            {"category": "skincare", "subcategories": ["cleansers", "serums"], "count": 2},
            {"category": "makeup", "subcategories": [], "count": 1},
        ]

    async def test_detail_includes_related(self, client, create_product):
        main = await create_product(name="Main", category="skincare")
        await create_product(name="Sibling", category="skincare")
        await create_product(name="Stranger", category="makeup")

        response = await client.get(f"{API}/products/{main['id']}")

        assert response.status_code == 200
        assert [p["name"] for p in response.json()["related_products"]] == ["Sibling"]

    async def test_detail_missing(self, client):
        response = await client.get(f"{API}/products/12345")

        assert response.status_code == 404


class TestCategories:
    async def test_create_generates_slug(self, client, admin_headers):
        response = await client.post(
            f"{API}/admin/categories",
            json={"name": "Bath & Body", "description": "Washes and lotions"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["slug"] == "bath-body"

    async def test_duplicate_name_conflicts(self, client, admin_headers):
        await client.post(f"{API}/admin/categories", json={"name": "Skincare"}, headers=admin_headers)

        response = await client.post(
            f"{API}/admin/categories", json={"name": "skincare"}, headers=admin_headers
        )

        assert response.status_code == 409

    async def test_public_list_counts_products(self, client, admin_headers, create_product):
        await client.post(f"{API}/admin/categories", json={"name": "Skincare"}, headers=admin_headers)
        await client.post(
            f"{API}/admin/categories",
            json={"name": "Retired", "is_active": False},
            headers=admin_headers,
        )
        await create_product(category="skincare")
        await create_product(category="skincare")

        response = await client.get(f"{API}/categories")

        assert response.status_code == 200
        assert [(c["slug"], c["product_count"]) for c in response.json()] == [("skincare", 2)]

    async def test_tree_nests_children(self, client, admin_headers):
        parent = await client.post(
            f"{API}/admin/categories", json={"name": "Skincare"}, headers=admin_headers
        )
        await client.post(
            f"{API}/admin/categories",
            json={"name": "Serums", "parent_id": parent.json()["id"]},
            headers=admin_headers,
        )

        response = await client.get(f"{API}/categories/tree")

        tree = response.json()
        assert [node["slug"] for node in tree] == ["skincare"]
        assert [child["slug"] for child in tree[0]["children"]] == ["serums"]

    async def test_rename_regenerates_slug(self, client, admin_headers):
        created = await client.post(
            f"{API}/admin/categories", json={"name": "Skin Care"}, headers=admin_headers
        )

        response = await client.put(
            f"{API}/admin/categories/{created.json()['id']}",
            json={"name": "Face Care"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["slug"] == "face-care"

    async def test_rename_carries_products_along(self, client, admin_headers, create_product):
        created = await client.post(
            f"{API}/admin/categories", json={"name": "Skin Care"}, headers=admin_headers
        )
        category_id = created.json()["id"]
        product = await create_product(category="skin-care")

        renamed = await client.put(
            f"{API}/admin/categories/{category_id}",
            json={"name": "Skincare Line"},
            headers=admin_headers,
        )
        deleted = await client.delete(f"{API}/admin/categories/{category_id}", headers=admin_headers)

        assert renamed.json()["slug"] == "skincare-line"
        assert renamed.json()["product_count"] == 1
        assert deleted.status_code == 400
        detail = await client.get(f"{API}/products/{product['id']}")
        assert detail.json()["category"] == "skincare-line"

    async def test_nesting_under_own_descendant_rejected(self, client, admin_headers):
        alpha = await client.post(
            f"{API}/admin/categories", json={"name": "Alpha"}, headers=admin_headers
        )
        beta = await client.post(
            f"{API}/admin/categories",
            json={"name": "Beta", "parent_id": alpha.json()["id"]},
            headers=admin_headers,
        )

        response = await client.put(
            f"{API}/admin/categories/{alpha.json()['id']}",
            json={"parent_id": beta.json()["id"]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        tree = (await client.get(f"{API}/categories/tree")).json()
        assert [node["slug"] for node in tree] == ["alpha"]
        assert [child["slug"] for child in tree[0]["children"]] == ["beta"]

    async def test_delete_blocked_while_products_use_it(self, client, admin_headers, create_product):
        created = await client.post(
            f"{API}/admin/categories", json={"name": "Skincare"}, headers=admin_headers
        )
        await create_product(category="skincare")

        response = await client.delete(
            f"{API}/admin/categories/{created.json()['id']}", headers=admin_headers
        )

        assert response.status_code == 400

    async def test_delete_unused(self, client, admin_headers):
        created = await client.post(
            f"{API}/admin/categories", json={"name": "Seasonal"}, headers=admin_headers
        )

        response = await client.delete(
            f"{API}/admin/categories/{created.json()['id']}", headers=admin_headers
        )

        assert response.status_code == 200
        assert (await client.get(f"{API}/categories")).json() == []
