"""
Payment order endpoint tests.

Covers POST /api/v1/payments/orders in live and mock mode.
"""

import json

import httpx
import pytest
from httpx import AsyncClient

from synapsewrite.services.razorpay import RAZORPAY_ORDERS_URL

ORDERS_URL = "/api/v1/payments/orders"


def razorpay_order(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(
        200,
        json={
            "id": "order_Live123",
            "entity": "order",
            "amount": body["amount"],
            "currency": body["currency"],
            "receipt": body["receipt"],
            "status": "created",
        },
    )


class TestCreateOrder:
    """Tests against the (fake) Razorpay API."""

    async def test_creates_monthly_order(self, async_client: AsyncClient, upstream):
        """The plan price is sent in paise."""
        upstream.route(RAZORPAY_ORDERS_URL, razorpay_order)

        response = await async_client.post(ORDERS_URL, json={"plan_id": "pro-monthly"})

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["order"]["id"] == "order_Live123"
        assert data["order"]["amount"] == 49900

        sent = json.loads(upstream.calls(RAZORPAY_ORDERS_URL)[0].content)
        assert sent["currency"] == "INR"
        assert sent["notes"] == {"plan": "pro-monthly"}
        assert sent["receipt"].startswith("rcpt_")

    async def test_yearly_plan_amount(self, async_client: AsyncClient, upstream):
        upstream.route(RAZORPAY_ORDERS_URL, razorpay_order)

        response = await async_client.post(ORDERS_URL, json={"plan_id": "pro-yearly"})

        assert response.json()["order"]["amount"] == 399900

    async def test_unknown_plan(self, async_client: AsyncClient, upstream):
        """Only known plans can be ordered."""
        response = await async_client.post(ORDERS_URL, json={"plan_id": "enterprise"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid planId"}
        assert upstream.requests == []

    async def test_missing_plan(self, async_client: AsyncClient):
        response = await async_client.post(ORDERS_URL, json={})

        assert response.status_code == 400

    async def test_razorpay_error_returns_502(self, async_client: AsyncClient, upstream):
        upstream.route(RAZORPAY_ORDERS_URL, lambda r: httpx.Response(400, json={"error": {}}))

        response = await async_client.post(ORDERS_URL, json={"plan_id": "pro-monthly"})

        assert response.status_code == 502
        assert response.json()["error"] == "Order creation failed"

    async def test_rate_limited(self, async_client: AsyncClient, upstream, client_headers):
        """Order creation is limited per client."""
        upstream.route(RAZORPAY_ORDERS_URL, razorpay_order)
        headers = client_headers("192.0.2.77")
        for _ in range(20):
            await async_client.post(ORDERS_URL, json={"plan_id": "pro-monthly"}, headers=headers)

        response = await async_client.post(ORDERS_URL, json={"plan_id": "pro-monthly"}, headers=headers)

        assert response.status_code == 429


class TestCreateOrderMock:
    """Tests in mock mode."""

    @pytest.fixture
    def settings_overrides(self):
        return {"razorpay_mock": True, "razorpay_key_id": None, "razorpay_key_secret": None}

    async def test_returns_fake_order(self, async_client: AsyncClient, upstream):
        """No call is made and the order id is marked as a mock."""
        response = await async_client.post(ORDERS_URL, json={"plan_id": "pro-yearly"})

        assert response.status_code == 200
        order = response.json()["order"]
        assert order["id"].startswith("order_MOCK_")
        assert order["amount"] == 399900
        assert order["currency"] == "INR"
        assert upstream.requests == []


class TestCreateOrderNotConfigured:
    """Tests in live mode without keys."""

    @pytest.fixture
    def settings_overrides(self):
        return {"razorpay_key_id": None}

    async def test_returns_500(self, async_client: AsyncClient):
        response = await async_client.post(ORDERS_URL, json={"plan_id": "pro-monthly"})

        assert response.status_code == 500
        assert response.json() == {"error": "Razorpay keys missing"}
