"""
InvoiceFlow - Proposal API Tests

Proposals are an agency feature and convert into draft invoices.
"""

import pytest
from httpx import AsyncClient


def proposal_payload(**overrides) -> dict:
    payload = {
        "title": "Website redesign",
        "client_name": "Jane Client",
        "client_email": "jane@clientco.com",
        "currency": "usd",
        "tax_enabled": True,
        "tax_rate": "10",
        "items": [
            {"title": "Discovery", "hours": "4", "rate": "100"},
            {"title": "Build", "hours": "10", "rate": "100"},
        ],
    }
    payload.update(overrides)
    return payload


class TestProposals:
    """Test proposal lifecycle."""

    @pytest.mark.asyncio
    async def test_requires_agency(self, client: AsyncClient, pro_headers: dict):
        response = await client.post("/api/v1/proposals", json=proposal_payload(), headers=pro_headers)

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "PLAN_REQUIRED"

    @pytest.mark.asyncio
    async def test_create_computes_totals(self, client: AsyncClient, agency_headers: dict):
        response = await client.post("/api/v1/proposals", json=proposal_payload(), headers=agency_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "draft"
        assert data["currency"] == "USD"
        assert data["subtotal"] == 1400.0
        assert data["tax_amount"] == 140.0
        assert data["total"] == 1540.0

    @pytest.mark.asyncio
    async def test_rate_must_be_positive(self, client: AsyncClient, agency_headers: dict):
        response = await client.post(
            "/api/v1/proposals",
            json=proposal_payload(items=[{"title": "Free work", "rate": "0"}]),
            headers=agency_headers,
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_overdiscount_rejected(self, client: AsyncClient, agency_headers: dict):
        response = await client.post(
            "/api/v1/proposals",
            json=proposal_payload(discount_enabled=True, discount_value="5000"),
            headers=agency_headers,
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_replaces_items(self, client: AsyncClient, agency_headers: dict):
        created = await client.post("/api/v1/proposals", json=proposal_payload(), headers=agency_headers)

        response = await client.put(
            f"/api/v1/proposals/{created.json()['id']}",
            json={"tax_enabled": False, "items": [{"title": "Retainer", "rate": "900"}]},
            headers=agency_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert [item["title"] for item in data["items"]] == ["Retainer"]
        assert data["total"] == 900.0

    @pytest.mark.asyncio
    async def test_convert_to_invoice(self, client: AsyncClient, agency_headers: dict):
        created = await client.post("/api/v1/proposals", json=proposal_payload(), headers=agency_headers)
        proposal_id = created.json()["id"]

        response = await client.post(f"/api/v1/proposals/{proposal_id}/convert", headers=agency_headers)

        assert response.status_code == 201
        invoice = response.json()
        assert invoice["status"] == "draft"
        assert invoice["client_email"] == "jane@clientco.com"
        assert invoice["total"] == 1540.0
        assert [item["title"] for item in invoice["items"]] == ["Discovery", "Build"]

        proposal = await client.get(f"/api/v1/proposals/{proposal_id}", headers=agency_headers)
        assert proposal.json()["status"] == "converted"
        assert proposal.json()["converted_invoice_id"] == invoice["id"]

        again = await client.post(f"/api/v1/proposals/{proposal_id}/convert", headers=agency_headers)
        assert again.status_code == 400
        assert again.json()["detail"]["message"] == "Proposal has already been converted"

        edit = await client.put(
            f"/api/v1/proposals/{proposal_id}",
            json={"title": "Too late"},
            headers=agency_headers,
        )
        assert edit.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, agency_headers: dict):
        created = await client.post("/api/v1/proposals", json=proposal_payload(), headers=agency_headers)

        response = await client.delete(f"/api/v1/proposals/{created.json()['id']}", headers=agency_headers)

        assert response.status_code == 200
        listing = await client.get("/api/v1/proposals", headers=agency_headers)
        assert listing.json() == []
