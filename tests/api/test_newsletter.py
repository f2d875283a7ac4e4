"""Newsletter subscription and admin broadcast."""

from unittest.mock import AsyncMock

import pytest

from conftest import API
from sphire.main import app
from sphire.services.email import get_email_service

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


async def subscribe(client, email, **extra):
    return await client.post(f"{API}/newsletter/subscribe", json={"email": email, **extra})


class TestSubscription:
    async def test_subscribe(self, client):
        response = await subscribe(client, "Fan@Example.com", source="popup")

        assert response.status_code == 201
        subscriber = response.json()["subscriber"]
        assert subscriber["email"] == "fan@example.com"
        assert subscriber["source"] == "popup"
        assert subscriber["is_active"] is True

    async def test_welcome_email_sent_once(self, client):
        email = AsyncMock()
        app.dependency_overrides[get_email_service] = lambda: email

        await subscribe(client, "fan@example.com")
        await subscribe(client, "fan@example.com")

        email.send_newsletter_welcome.assert_awaited_once_with("fan@example.com")

    async def test_already_subscribed(self, client):
        await subscribe(client, "fan@example.com")

        response = await subscribe(client, "fan@example.com")

        assert response.status_code == 200
        assert "already subscribed" in response.json()["message"]

    async def test_invalid_email(self, client):
        response = await subscribe(client, "not-an-email")

        assert response.status_code == 422

    async def test_unsubscribe_and_resubscribe(self, client):
        await subscribe(client, "fan@example.com")

        response = await client.post(f"{API}/newsletter/unsubscribe", json={"email": "fan@example.com"})
        assert response.status_code == 200

        again = await client.post(f"{API}/newsletter/unsubscribe", json={"email": "fan@example.com"})
        assert again.json()["message"] == "Email is already unsubscribed"

        back = await subscribe(client, "fan@example.com")
        assert back.status_code == 200
        assert back.json()["subscriber"]["is_active"] is True
        assert back.json()["subscriber"]["unsubscribed_at"] is None

    async def test_unsubscribe_unknown(self, client):
        response = await client.post(
            f"{API}/newsletter/unsubscribe", json={"email": "ghost@example.com"}
        )

        assert response.status_code == 404


class TestNewsletterAdmin:
    async def test_subscriber_list_counts_active(self, client, admin_headers):
        await subscribe(client, "one@example.com")
        await subscribe(client, "two@example.com")
        await client.post(f"{API}/newsletter/unsubscribe", json={"email": "two@example.com"})

        response = await client.get(f"{API}/newsletter/subscribers", headers=admin_headers)

        data = response.json()
        assert data["total"] == 2
        assert data["active_count"] == 1

    async def test_stats(self, client, admin_headers):
        await subscribe(client, "one@example.com", source="checkout")
        await subscribe(client, "two@example.com")
        await client.post(f"{API}/newsletter/unsubscribe", json={"email": "two@example.com"})

        response = await client.get(f"{API}/newsletter/stats", headers=admin_headers)

        data = response.json()
        assert data["total_subscribers"] == 2
        assert data["active_subscribers"] == 1
        assert data["unsubscribed"] == 1
        assert data["recent_subscriptions"] == 2
        assert data["source_breakdown"]["checkout"] == 1
        assert data["source_breakdown"]["footer"] == 0
        assert data["subscription_rate"] == "50.00%"

    async def test_send_requires_subscribers(self, client, admin_headers):
        response = await client.post(
            f"{API}/newsletter/send",
            json={"subject": "Spring sale", "content": "<p>20% off</p>"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "No active subscribers found"

    async def test_send_to_active_subscribers(self, client, admin_headers):
        email = AsyncMock()
        email.send_newsletter.return_value = 2
        app.dependency_overrides[get_email_service] = lambda: email
        for address in ("one@example.com", "two@example.com", "three@example.com"):
            await subscribe(client, address)
        await client.post(f"{API}/newsletter/unsubscribe", json={"email": "three@example.com"})

        response = await client.post(
            f"{API}/newsletter/send",
            json={"subject": "Spring sale", "content": "<p>20% off</p>"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["recipient_count"] == 2
        recipients, subject, _ = email.send_newsletter.await_args.args
        assert sorted(recipients) == ["one@example.com", "two@example.com"]
        assert subject == "Spring sale"

    async def test_delete_subscriber(self, client, admin_headers):
        created = await subscribe(client, "one@example.com")

        response = await client.delete(
            f"{API}/newsletter/subscribers/{created.json()['subscriber']['id']}",
            headers=admin_headers,
        )

        assert response.status_code == 200
        listing = await client.get(f"{API}/newsletter/subscribers", headers=admin_headers)
        assert listing.json()["total"] == 0

    async def test_admin_only(self, client, user_headers):
        response = await client.get(f"{API}/newsletter/stats", headers=user_headers)

        assert response.status_code == 403
