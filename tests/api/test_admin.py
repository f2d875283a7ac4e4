"""Admin dashboard: stats, users, orders, locations, settings and the audit log."""

from unittest.mock import AsyncMock

import pytest

from conftest import ADMIN_EMAIL, API, SHIPPING_ADDRESS
from sphire.main import app
from sphire.services.email import get_email_service

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


class TestAccess:
    async def test_shopper_forbidden(self, client, user_headers):
        response = await client.get(f"{API}/admin/dashboard/stats", headers=user_headers)

        assert response.status_code == 403

    async def test_anonymous_unauthorized(self, client):
        response = await client.get(f"{API}/admin/users")

        assert response.status_code == 401


class TestDashboard:
    async def test_stats(self, client, admin_headers, user_headers, create_product, place_order):
        product = await create_product(price=30.0, stock_quantity=12)
        await create_product(name="Almost Gone", stock_quantity=3)
        await place_order(user_headers, [(product["id"], 2)])

        response = await client.get(f"{API}/admin/dashboard/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["users"] == {"total": 2, "active": 2, "inactive": 0, "admins": 1}
        assert data["products"]["total"] == 2
        assert data["products"]["total_stock"] == 13
        assert data["products"]["low_stock"] == 2
        assert data["orders"]["total"] == 1
        assert data["orders"]["total_revenue"] == 74.8
        assert data["orders"]["status_counts"]["pending"] == 1

    async def test_revenue_analytics(self, client, admin_headers, user_headers, create_product, place_order):
        product = await create_product(price=30.0)
        await place_order(user_headers, [(product["id"], 2)])
        await place_order(user_headers, [(product["id"], 1)])

        response = await client.get(
            f"{API}/admin/analytics/revenue", params={"period": "7d"}, headers=admin_headers
        )

        data = response.json()
        assert data["period"] == "7d"
        assert data["total_orders"] == 2
        assert data["total_revenue"] == 117.2
        assert len(data["data"]) == 1

    async def test_activity_log_records_admin_writes(self, client, admin_headers, create_product):
        product = await create_product()

        response = await client.get(
            f"{API}/admin/activity-logs",
            params={"resource": "product", "action": "create"},
            headers=admin_headers,
        )

        entries = response.json()["items"]
        assert len(entries) == 1
        assert entries[0]["resource_id"] == str(product["id"])
        assert entries[0]["status"] == "success"


class TestUserManagement:
    async def test_list_and_search(self, client, admin_headers, register_user):
        await register_user(email="ayesha@example.com", name="Ayesha Khan")
        await register_user(email="bilal@example.com", name="Bilal Ahmed")

        response = await client.get(
            f"{API}/admin/users", params={"search": "ayesha"}, headers=admin_headers
        )

        assert [u["email"] for u in response.json()["items"]] == ["ayesha@example.com"]

    async def test_filter_by_role(self, client, admin_headers, register_user):
        await register_user()

        response = await client.get(
            f"{API}/admin/users", params={"role": "admin"}, headers=admin_headers
        )

        assert [u["email"] for u in response.json()["items"]] == [ADMIN_EMAIL]

    async def test_user_detail_has_recent_orders(
        self, client, admin_headers, register_user, create_product, place_order
    ):
        body = await register_user()
        headers = {"Authorization": f"Bearer {body['access_token']}"}
        product = await create_product()
        await place_order(headers, [(product["id"], 1)])

        response = await client.get(f"{API}/admin/users/{body['user']['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert len(response.json()["recent_orders"]) == 1

    async def test_create_user(self, client, admin_headers):
        response = await client.post(
            f"{API}/admin/users",
            json={"name": "New Staff", "email": "staff@example.com", "password": "staffpass",
                  "role": "admin"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["role"] == "admin"
        login = await client.post(
            f"{API}/auth/login", json={"email": "staff@example.com", "password": "staffpass"}
        )
        assert login.status_code == 200

    async def test_create_duplicate(self, client, admin_headers):
        response = await client.post(
            f"{API}/admin/users",
            json={"name": "Dup", "email": ADMIN_EMAIL, "password": "whatever1"},
            headers=admin_headers,
        )

        assert response.status_code == 409

    async def test_deactivate_user(self, client, admin_headers, register_user):
        body = await register_user()

        response = await client.put(
            f"{API}/admin/users/{body['user']['id']}",
            json={"is_active": False},
            headers=admin_headers,
        )

        assert response.json()["is_active"] is False
        me = await client.get(
            f"{API}/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"}
        )
        assert me.status_code == 401

    async def test_cannot_delete_self(self, client, admin_headers):
        me = await client.get(f"{API}/auth/me", headers=admin_headers)

        response = await client.delete(f"{API}/admin/users/{me.json()['id']}", headers=admin_headers)

        assert response.status_code == 400

    async def test_cannot_delete_customer_with_orders(
        self, client, admin_headers, register_user, create_product, place_order
    ):
        body = await register_user()
        product = await create_product()
        await place_order({"Authorization": f"Bearer {body['access_token']}"}, [(product["id"], 1)])

        response = await client.delete(f"{API}/admin/users/{body['user']['id']}", headers=admin_headers)

        assert response.status_code == 400

    async def test_delete_user(self, client, admin_headers, register_user):
        body = await register_user()

        response = await client.delete(f"{API}/admin/users/{body['user']['id']}", headers=admin_headers)

        assert response.status_code == 200
        missing = await client.get(f"{API}/admin/users/{body['user']['id']}", headers=admin_headers)
        assert missing.status_code == 404

    async def test_address_book(self, client, admin_headers, user_headers):
        await client.post(f"{API}/users/addresses", json=SHIPPING_ADDRESS, headers=user_headers)

        response = await client.get(
            f"{API}/admin/addresses", params={"search": "lahore"}, headers=admin_headers
        )

        items = response.json()["items"]
        assert len(items) == 1
        assert items[0]["user_email"] == "shopper@example.com"
        assert items[0]["city"] == "Lahore"

    async def test_edit_customer_address_moves_default(self, client, admin_headers, user_headers):
        await client.post(f"{API}/users/addresses", json=SHIPPING_ADDRESS, headers=user_headers)
        added = await client.post(
            f"{API}/users/addresses",
            json={**SHIPPING_ADDRESS, "city": "Karachi", "type": "work"},
            headers=user_headers,
        )
        home, work = added.json()

        response = await client.put(
            f"{API}/admin/addresses/{work['id']}",
            json={"street": "7 Sea View", "is_default": True},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["street"] == "7 Sea View"
        assert response.json()["user_email"] == "shopper@example.com"
        mine = (await client.get(f"{API}/users/addresses", headers=user_headers)).json()
        assert [(a["id"], a["is_default"]) for a in mine] == [(home["id"], False), (work["id"], True)]

    async def test_delete_customer_address_promotes_next(self, client, admin_headers, user_headers):
        await client.post(f"{API}/users/addresses", json=SHIPPING_ADDRESS, headers=user_headers)
        added = await client.post(
            f"{API}/users/addresses", json={**SHIPPING_ADDRESS, "city": "Karachi"}, headers=user_headers
        )
        home, office = added.json()

        response = await client.delete(f"{API}/admin/addresses/{home['id']}", headers=admin_headers)

        assert response.status_code == 200
        mine = (await client.get(f"{API}/users/addresses", headers=user_headers)).json()
        assert [(a["id"], a["is_default"]) for a in mine] == [(office["id"], True)]
        logs = await client.get(
            f"{API}/admin/activity-logs",
            params={"resource": "address", "action": "delete"},
            headers=admin_headers,
        )
        assert [e["resource_id"] for e in logs.json()["items"]] == [str(home["id"])]

    async def test_missing_customer_address(self, client, admin_headers):
        response = await client.delete(f"{API}/admin/addresses/9999", headers=admin_headers)

        assert response.status_code == 404


class TestOrderManagement:
    async def test_list_with_customer(self, client, admin_headers, user_headers, create_product, place_order):
        product = await create_product()
        order = await place_order(user_headers, [(product["id"], 1)])

        response = await client.get(
            f"{API}/admin/orders", params={"search": order["order_number"][-5:]}, headers=admin_headers
        )

        items = response.json()["items"]
        assert [o["id"] for o in items] == [order["id"]]
        assert items[0]["customer_email"] == "shopper@example.com"

    async def test_search_by_item_name(self, client, admin_headers, user_headers, create_product, place_order):
        serum = await create_product(name="Rosehip Serum")
        balm = await create_product(name="Lip Balm")
        await place_order(user_headers, [(serum["id"], 1)])
        await place_order(user_headers, [(balm["id"], 1)])

        response = await client.get(
            f"{API}/admin/orders", params={"search": "rosehip"}, headers=admin_headers
        )

        assert response.json()["total"] == 1

    async def test_tracking_number_ships_order(
        self, client, admin_headers, user_headers, create_product, place_order
    ):
        product = await create_product()
        order = await place_order(user_headers, [(product["id"], 1)])

        response = await client.put(
            f"{API}/admin/orders/{order['id']}/status",
            json={"tracking_number": "TRK-42", "admin_notes": "Left warehouse"},
            headers=admin_headers,
        )

        data = response.json()
        assert data["order_status"] == "shipped"
        assert data["tracking_number"] == "TRK-42"
        assert data["admin_notes"] == "Left warehouse"

    async def test_delivery_marks_paid(self, client, admin_headers, user_headers, create_product, place_order):
        product = await create_product()
        order = await place_order(user_headers, [(product["id"], 1)])

        response = await client.put(
            f"{API}/admin/orders/{order['id']}/status",
            json={"status": "delivered"},
            headers=admin_headers,
        )

        data = response.json()
        assert data["payment_status"] == "paid"
        assert data["delivered_at"] is not None

    async def test_admin_cancel_restores_stock(
        self, client, admin_headers, user_headers, create_product, place_order
    ):
        product = await create_product(stock_quantity=10)
        order = await place_order(user_headers, [(product["id"], 3)])

        await client.put(
            f"{API}/admin/orders/{order['id']}/status",
            json={"status": "cancelled", "admin_notes": "Customer called"},
            headers=admin_headers,
        )

        detail = await client.get(f"{API}/products/{product['id']}")
        assert detail.json()["stock_quantity"] == 10

    async def test_cancelled_order_cannot_be_reopened(
        self, client, admin_headers, user_headers, create_product, place_order
    ):
        product = await create_product(stock_quantity=10)
        order = await place_order(user_headers, [(product["id"], 4)])
        url = f"{API}/admin/orders/{order['id']}/status"
        await client.put(url, json={"status": "cancelled"}, headers=admin_headers)

        reopened = await client.put(url, json={"status": "pending"}, headers=admin_headers)
        shipped = await client.put(url, json={"tracking_number": "TRK1"}, headers=admin_headers)
        again = await client.put(url, json={"status": "cancelled"}, headers=admin_headers)
        deleted = await client.delete(f"{API}/admin/orders/{order['id']}", headers=admin_headers)

        assert reopened.status_code == 400
        assert shipped.status_code == 400
        assert again.status_code == 200
        assert deleted.status_code == 400
        detail = await client.get(f"{API}/products/{product['id']}")
        assert detail.json()["stock_quantity"] == 10

    async def test_status_change_emails_customer(
        self, client, admin_headers, user_headers, create_product, place_order
    ):
        product = await create_product()
        order = await place_order(user_headers, [(product["id"], 1)])
        email = AsyncMock()
        app.dependency_overrides[get_email_service] = lambda: email

        await client.put(
            f"{API}/admin/orders/{order['id']}/status",
            json={"status": "confirmed"},
            headers=admin_headers,
        )

        email.send_order_status_update.assert_awaited_once()
        assert email.send_order_status_update.await_args.args[1] == "shopper@example.com"

    async def test_only_pending_orders_deleted(
        self, client, admin_headers, user_headers, create_product, place_order
    ):
        product = await create_product(stock_quantity=10)
        pending = await place_order(user_headers, [(product["id"], 2)])
        shipped = await place_order(user_headers, [(product["id"], 1)])
        await client.put(
            f"{API}/admin/orders/{shipped['id']}/status",
            json={"status": "shipped"},
            headers=admin_headers,
        )

        refused = await client.delete(f"{API}/admin/orders/{shipped['id']}", headers=admin_headers)
        deleted = await client.delete(f"{API}/admin/orders/{pending['id']}", headers=admin_headers)

        assert refused.status_code == 400
        assert deleted.status_code == 200
        detail = await client.get(f"{API}/products/{product['id']}")
        assert detail.json()["stock_quantity"] == 9


LOCATION = {
    "name": "Lahore Warehouse",
    "type": "warehouse",
    "code": "lhr01",
    "delivery_zones": [
        {
            "name": "Punjab",
            "cities": ["Lahore", "Faisalabad"],
            "delivery_time": {"min": 1, "max": 3},
            "delivery_cost": 250,
            "free_delivery_threshold": 5000,
        }
    ],
}


class TestLocations:
    async def test_create_uppercases_code(self, client, admin_headers):
        response = await client.post(f"{API}/admin/locations", json=LOCATION, headers=admin_headers)

        assert response.status_code == 201
        assert response.json()["code"] == "LHR01"

    async def test_duplicate_code(self, client, admin_headers):
        await client.post(f"{API}/admin/locations", json=LOCATION, headers=admin_headers)

        response = await client.post(
            f"{API}/admin/locations", json={**LOCATION, "code": "LHR01"}, headers=admin_headers
        )

        assert response.status_code == 409

    async def test_single_default(self, client, admin_headers):
        first = await client.post(
            f"{API}/admin/locations", json={**LOCATION, "is_default": True}, headers=admin_headers
        )
        await client.post(
            f"{API}/admin/locations",
            json={**LOCATION, "code": "KHI01", "name": "Karachi Store", "type": "store",
                  "is_default": True},
            headers=admin_headers,
        )

        old = await client.get(f"{API}/admin/locations/{first.json()['id']}", headers=admin_headers)
        assert old.json()["is_default"] is False

    async def test_filter_by_type(self, client, admin_headers):
        await client.post(f"{API}/admin/locations", json=LOCATION, headers=admin_headers)
        await client.post(
            f"{API}/admin/locations",
            json={**LOCATION, "code": "KHI01", "name": "Karachi Store", "type": "store"},
            headers=admin_headers,
        )

        response = await client.get(
            f"{API}/admin/locations", params={"type": "store"}, headers=admin_headers
        )

        assert [loc["code"] for loc in response.json()["items"]] == ["KHI01"]

    async def test_delivery_cost(self, client, admin_headers):
        created = await client.post(f"{API}/admin/locations", json=LOCATION, headers=admin_headers)
        url = f"{API}/admin/locations/{created.json()['id']}/delivery-cost"

        paid = await client.get(url, params={"city": "lahore", "order_value": 1000}, headers=admin_headers)
        free = await client.get(url, params={"city": "Lahore", "order_value": 5000}, headers=admin_headers)
        unserved = await client.get(url, params={"city": "Quetta"}, headers=admin_headers)

        assert paid.json()["delivery_cost"] == 250.0
        assert free.json()["delivery_cost"] == 0.0
        assert unserved.json()["serviceable"] is False
        assert unserved.json()["delivery_cost"] is None

    async def test_update_and_delete(self, client, admin_headers):
        created = await client.post(f"{API}/admin/locations", json=LOCATION, headers=admin_headers)
        location_id = created.json()["id"]

        updated = await client.put(
            f"{API}/admin/locations/{location_id}", json={"is_active": False}, headers=admin_headers
        )
        deleted = await client.delete(f"{API}/admin/locations/{location_id}", headers=admin_headers)

        assert updated.json()["is_active"] is False
        assert deleted.status_code == 200


class TestSettings:
    async def test_defaults_created_on_first_read(self, client, admin_headers):
        response = await client.get(f"{API}/admin/settings", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["payment"]["tax_rate"] == 8
        assert data["security"]["max_login_attempts"] == 5

    async def test_partial_update_merges(self, client, admin_headers):
        response = await client.put(
            f"{API}/admin/settings",
            json={
                "payment": {"tax_rate": 10},
                "business_info": {"address": {"city": "Karachi"}},
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["payment"]["tax_rate"] == 10
        assert data["payment"]["accepted_methods"] == ["cash_on_delivery"]
        assert data["business_info"]["address"]["city"] == "Karachi"
        assert data["business_info"]["address"]["country"] == "Pakistan"

    async def test_security_limits_validated(self, client, admin_headers):
        response = await client.put(
            f"{API}/admin/settings",
            json={"security": {"session_timeout": 60}},
            headers=admin_headers,
        )

        assert response.status_code == 422

    async def test_update_logged(self, client, admin_headers):
        await client.put(
            f"{API}/admin/settings", json={"features": {"wishlist": False}}, headers=admin_headers
        )

        logs = await client.get(
            f"{API}/admin/activity-logs", params={"resource": "settings"}, headers=admin_headers
        )

        assert logs.json()["items"][0]["details"] == {"sections": ["features"]}
