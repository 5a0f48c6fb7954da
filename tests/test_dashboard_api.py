"""
InvoiceFlow - Dashboard API Tests
"""

import pytest
from httpx import AsyncClient

from app.models.invoice import Invoice


class TestDashboard:
    """Test the dashboard endpoints."""

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient, pro_headers: dict, test_invoice: Invoice):
        response = await client.get("/api/v1/dashboard/stats", headers=pro_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_invoices"] == 1
        assert data["pending_invoices"] == 1
        assert data["total_revenue"] == 0.0
        assert data["recent_invoices"][0]["invoice_number"] == "INV-0001"

    @pytest.mark.asyncio
    async def test_stats_reflect_payment(self, client: AsyncClient, pro_headers: dict, test_invoice: Invoice):
        await client.patch(
            f"/api/v1/invoices/{test_invoice.id}/status",
            json={"status": "paid"},
            headers=pro_headers,
        )

        response = await client.get("/api/v1/dashboard/stats", headers=pro_headers)

        assert response.json()["paid_invoices"] == 1
        assert response.json()["total_revenue"] == 137.5

    @pytest.mark.asyncio
    async def test_stats_are_per_user(self, client: AsyncClient, other_headers: dict, test_invoice: Invoice):
        response = await client.get("/api/v1/dashboard/stats", headers=other_headers)

        assert response.json()["total_invoices"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("requested,window", [(3, 6), (6, 6), (12, 12)])
    async def test_analytics_window(
        self,
        client: AsyncClient,
        pro_headers: dict,
        test_invoice: Invoice,
        requested: int,
        window: int,
    ):
        response = await client.get(
            "/api/v1/dashboard/analytics",
            params={"months": requested},
            headers=pro_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["months"] == window
        assert len(data["monthly"]) == window
        assert data["total_invoices"] == 1
        assert data["monthly"][-1]["invoices"] == 1
