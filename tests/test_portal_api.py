"""
InvoiceFlow - Client Portal Tests

Portal links are issued by agency users and opened without login.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.agency import ClientPortalAccess
from app.models.company import WhiteLabelSettings
from app.models.user import User


INVALID_LINK = "This portal link is invalid or has expired"


async def create_invoice(client: AsyncClient, headers: dict, email: str, title: str = "Retainer") -> dict:
    response = await client.post(
        "/api/v1/invoices",
        json={
            "client_name": "Portal Client",
            "client_email": email,
            "currency": "USD",
            "items": [{"title": title, "rate": "400"}],
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


async def issue_access(client: AsyncClient, headers: dict, email: str) -> dict:
    response = await client.post(
        "/api/v1/agency/portal-access",
        json={"client_email": email, "send_email": False},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


# ===========================================
# ISSUING ACCESS
# ===========================================

class TestPortalAccessManagement:
    """Test the owner side of portal links."""

    @pytest.mark.asyncio
    async def test_issue_access(self, client: AsyncClient, agency_headers: dict):
        data = await issue_access(client, agency_headers, "Buyer@ClientCo.com")

        assert data["client_email"] == "buyer@clientco.com"
        assert data["is_active"] is True
        assert data["portal_url"].endswith(f"/client/{data['access_token']}")

    @pytest.mark.asyncio
    async def test_pro_user_cannot_issue_access(self, client: AsyncClient, pro_headers: dict):
        response = await client.post(
            "/api/v1/agency/portal-access",
            json={"client_email": "buyer@clientco.com", "send_email": False},
            headers=pro_headers,
        )

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "PLAN_REQUIRED"

    @pytest.mark.asyncio
    async def test_toggle_disables_link(self, client: AsyncClient, agency_headers: dict):
        access = await issue_access(client, agency_headers, "buyer@clientco.com")

        toggled = await client.post(
            f"/api/v1/agency/portal-access/{access['id']}/toggle",
            headers=agency_headers,
        )
        assert toggled.status_code == 200
        assert toggled.json()["is_active"] is False

        response = await client.get(f"/api/v1/portal/{access['access_token']}")
        assert response.status_code == 404
        assert response.json()["detail"]["message"] == INVALID_LINK

    @pytest.mark.asyncio
    async def test_delete_revokes_link(self, client: AsyncClient, agency_headers: dict):
        access = await issue_access(client, agency_headers, "buyer@clientco.com")

        deleted = await client.delete(
            f"/api/v1/agency/portal-access/{access['id']}",
            headers=agency_headers,
        )
        assert deleted.status_code == 200

        response = await client.get(f"/api/v1/portal/{access['access_token']}")
        assert response.status_code == 404


# ===========================================
# PUBLIC PORTAL
# ===========================================

class TestPublicPortal:
    """Test the unauthenticated portal view."""

    @pytest.mark.asyncio
    async def test_shows_only_matching_client_invoices(
        self,
        client: AsyncClient,
        agency_headers: dict,
    ):
        await create_invoice(client, agency_headers, "buyer@clientco.com", "Retainer")
        await create_invoice(client, agency_headers, "BUYER@clientco.com", "Extra hours")
        await create_invoice(client, agency_headers, "someone@elsewhere.com", "Unrelated")
        access = await issue_access(client, agency_headers, "buyer@clientco.com")

        response = await client.get(f"/api/v1/portal/{access['access_token']}")

        assert response.status_code == 200
        data = response.json()
        assert data["client_email"] == "buyer@clientco.com"
        titles = {inv["items"][0]["title"] for inv in data["invoices"]}
        assert titles == {"Retainer", "Extra hours"}

    @pytest.mark.asyncio
    async def test_other_tenants_invoices_hidden(
        self,
        client: AsyncClient,
        agency_headers: dict,
        pro_headers: dict,
    ):
        await create_invoice(client, pro_headers, "buyer@clientco.com", "From someone else")
        access = await issue_access(client, agency_headers, "buyer@clientco.com")

        response = await client.get(f"/api/v1/portal/{access['access_token']}")

        assert response.status_code == 200
        assert response.json()["invoices"] == []

    @pytest.mark.asyncio
    async def test_total_outstanding_counts_sent_invoices(
        self,
        client: AsyncClient,
        agency_headers: dict,
    ):
        sent = await create_invoice(client, agency_headers, "buyer@clientco.com")
        await create_invoice(client, agency_headers, "buyer@clientco.com")
        await client.patch(
            f"/api/v1/invoices/{sent['id']}/status",
            json={"status": "sent"},
            headers=agency_headers,
        )
        access = await issue_access(client, agency_headers, "buyer@clientco.com")

        response = await client.get(f"/api/v1/portal/{access['access_token']}")

        assert response.json()["total_outstanding"] == 400.0

    @pytest.mark.asyncio
    async def test_unknown_token(self, client: AsyncClient, db_session: AsyncSession):
        response = await client.get("/api/v1/portal/not-a-real-token")

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"
        assert response.json()["detail"]["message"] == INVALID_LINK

    @pytest.mark.asyncio
    async def test_expired_token(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        agency_user: User,
    ):
        access = ClientPortalAccess(
            user_id=agency_user.id,
            client_email="buyer@clientco.com",
            access_token="expired-token",
            expires_at=datetime.now(timezone.utc) - timedelta(days=1),
            is_active=True,
        )
        db_session.add(access)
        await db_session.commit()

        response = await client.get("/api/v1/portal/expired-token")

        assert response.status_code == 404
        assert response.json()["detail"]["message"] == INVALID_LINK

    @pytest.mark.asyncio
    async def test_branding_for_agency_owner(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        agency_user: User,
        agency_headers: dict,
    ):
        db_session.add(WhiteLabelSettings(
            user_id=agency_user.id,
            primary_color="#112233",
            secondary_color="#445566",
            hide_branding=True,
        ))
        await db_session.commit()
        access = await issue_access(client, agency_headers, "buyer@clientco.com")

        response = await client.get(f"/api/v1/portal/{access['access_token']}")

        branding = response.json()["branding"]
        assert branding["primary_color"] == "#112233"
        assert branding["hide_branding"] is True

    @pytest.mark.asyncio
    async def test_branding_dropped_after_downgrade(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        agency_user: User,
        agency_headers: dict,
    ):
        db_session.add(WhiteLabelSettings(
            user_id=agency_user.id,
            primary_color="#112233",
            secondary_color="#445566",
        ))
        await db_session.commit()
        access = await issue_access(client, agency_headers, "buyer@clientco.com")

        agency_user.plan_expires_at = datetime.now(timezone.utc) - timedelta(days=1)
        await db_session.commit()

        response = await client.get(f"/api/v1/portal/{access['access_token']}")

        assert response.status_code == 200
        assert response.json()["branding"] is None


# ===========================================
# PDF DOWNLOAD
# ===========================================

class TestPortalPdf:
    """Test PDF downloads through a portal link."""

    @pytest.mark.asyncio
    async def test_download_own_invoice(self, client: AsyncClient, agency_headers: dict):
        invoice = await create_invoice(client, agency_headers, "buyer@clientco.com")
        access = await issue_access(client, agency_headers, "buyer@clientco.com")

        response = await client.get(
            f"/api/v1/portal/{access['access_token']}/invoices/{invoice['id']}/pdf"
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_cannot_download_other_clients_invoice(
        self,
        client: AsyncClient,
        agency_headers: dict,
    ):
        invoice = await create_invoice(client, agency_headers, "someone@elsewhere.com")
        access = await issue_access(client, agency_headers, "buyer@clientco.com")

        response = await client.get(
            f"/api/v1/portal/{access['access_token']}/invoices/{invoice['id']}/pdf"
        )

        assert response.status_code == 404
