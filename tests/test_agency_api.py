"""
InvoiceFlow - Agency API Tests

Team, white label, branded email, recurring schedules and API keys.
"""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.activity import EmailLog, EmailType
from app.models.invoice import Invoice


class TestAgencyGate:
    """Agency endpoints refuse other plans."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/api/v1/agency/team", "/api/v1/agency/white-label", "/api/v1/agency/api-keys"])
    async def test_pro_user_gets_plan_required(self, client: AsyncClient, pro_headers: dict, path: str):
        response = await client.get(path, headers=pro_headers)

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "PLAN_REQUIRED"

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/agency/team")

        assert response.status_code == 401


# ===========================================
# TEAM
# ===========================================

class TestTeam:
    """Test team invitations."""

    @pytest.mark.asyncio
    async def test_invite_member(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        agency_headers: dict,
    ):
        response = await client.post(
            "/api/v1/agency/team",
            json={"email": "Designer@AcmeStudio.com", "name": "Dana Designer"},
            headers=agency_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "designer@acmestudio.com"
        assert data["status"] == "pending"
        assert data["role"] == "member"

        logs = (await db_session.execute(
            select(EmailLog).where(EmailLog.recipient_email == "designer@acmestudio.com")
        )).scalars().all()
        assert len(logs) == 1
        assert logs[0].email_type == EmailType.NOTIFICATION

    @pytest.mark.asyncio
    async def test_cannot_invite_self(self, client: AsyncClient, agency_headers: dict):
        response = await client.post(
            "/api/v1/agency/team",
            json={"email": "agency@example.com", "name": "Me"},
            headers=agency_headers,
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_duplicate_invite(self, client: AsyncClient, agency_headers: dict):
        payload = {"email": "designer@acmestudio.com", "name": "Dana"}
        await client.post("/api/v1/agency/team", json=payload, headers=agency_headers)

        response = await client.post("/api/v1/agency/team", json=payload, headers=agency_headers)

        assert response.status_code == 400
        assert "already on your team" in response.json()["detail"]["message"]

    @pytest.mark.asyncio
    async def test_team_limit_counts_owner(self, client: AsyncClient, agency_headers: dict):
        for i in range(settings.agency_team_size_limit - 1):
            response = await client.post(
                "/api/v1/agency/team",
                json={"email": f"member{i}@acmestudio.com", "name": f"Member {i}"},
                headers=agency_headers,
            )
            assert response.status_code == 201

        response = await client.post(
            "/api/v1/agency/team",
            json={"email": "onemore@acmestudio.com", "name": "One More"},
            headers=agency_headers,
        )
        assert response.status_code == 400
        assert "Team size limit reached" in response.json()["detail"]["message"]

        listing = await client.get("/api/v1/agency/team", headers=agency_headers)
        assert listing.json()["seats_used"] == settings.agency_team_size_limit

    @pytest.mark.asyncio
    async def test_update_and_remove_member(self, client: AsyncClient, agency_headers: dict):
        created = await client.post(
            "/api/v1/agency/team",
            json={"email": "designer@acmestudio.com", "name": "Dana"},
            headers=agency_headers,
        )
        member_id = created.json()["id"]

        updated = await client.put(
            f"/api/v1/agency/team/{member_id}",
            json={"role": "admin", "status": "active"},
            headers=agency_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["role"] == "admin"
        assert updated.json()["status"] == "active"

        removed = await client.delete(f"/api/v1/agency/team/{member_id}", headers=agency_headers)
        assert removed.status_code == 200

        listing = await client.get("/api/v1/agency/team", headers=agency_headers)
        assert listing.json()["members"] == []


# ===========================================
# WHITE LABEL
# ===========================================

class TestWhiteLabel:
    """Test white-label settings."""

    @pytest.mark.asyncio
    async def test_defaults_when_unset(self, client: AsyncClient, agency_headers: dict):
        response = await client.get("/api/v1/agency/white-label", headers=agency_headers)

        assert response.status_code == 200
        assert response.json()["primary_color"] == "#3B82F6"
        assert response.json()["hide_branding"] is False

    @pytest.mark.asyncio
    async def test_save_and_update(self, client: AsyncClient, agency_headers: dict):
        await client.put(
            "/api/v1/agency/white-label",
            json={"primary_color": "#112233", "hide_branding": True},
            headers=agency_headers,
        )
        response = await client.put(
            "/api/v1/agency/white-label",
            json={"secondary_color": "#445566"},
            headers=agency_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["primary_color"] == "#112233"
        assert data["secondary_color"] == "#445566"
        assert data["hide_branding"] is True

    @pytest.mark.asyncio
    async def test_rejects_bad_color(self, client: AsyncClient, agency_headers: dict):
        response = await client.put(
            "/api/v1/agency/white-label",
            json={"primary_color": "blue"},
            headers=agency_headers,
        )

        assert response.status_code == 422


# ===========================================
# BRANDED EMAIL
# ===========================================

class TestEmailSettings:
    """Test SMTP settings."""

    @pytest.mark.asyncio
    async def test_presets(self, client: AsyncClient, agency_headers: dict):
        response = await client.get("/api/v1/agency/email-settings/presets", headers=agency_headers)

        assert response.status_code == 200
        assert response.json()["hostinger"] == {
            "smtp_host": "smtp.hostinger.com",
            "smtp_port": 465,
            "smtp_secure": True,
        }

    @pytest.mark.asyncio
    async def test_preset_fills_connection(self, client: AsyncClient, agency_headers: dict):
        response = await client.put(
            "/api/v1/agency/email-settings",
            json={
                "provider": "gmail",
                "smtp_username": "studio@gmail.com",
                "smtp_password": "app-password",
                "from_name": "Acme Studio",
                "from_email": "studio@gmail.com",
            },
            headers=agency_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["smtp_host"] == "smtp.gmail.com"
        assert data["smtp_port"] == 587
        assert data["has_password"] is True
        assert "smtp_password" not in data

    @pytest.mark.asyncio
    async def test_missing_fields(self, client: AsyncClient, agency_headers: dict):
        response = await client.put(
            "/api/v1/agency/email-settings",
            json={"provider": "custom", "from_name": "Acme"},
            headers=agency_headers,
        )

        assert response.status_code == 400
        assert "Missing required email settings" in response.json()["detail"]["message"]

    @pytest.mark.asyncio
    async def test_not_found_before_setup(self, client: AsyncClient, agency_headers: dict):
        response = await client.get("/api/v1/agency/email-settings", headers=agency_headers)

        assert response.status_code == 404


# ===========================================
# RECURRING
# ===========================================

class TestRecurring:
    """Test recurring schedules created from the agency endpoints."""

    @pytest.mark.asyncio
    async def test_schedule_existing_invoice(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        agency_headers: dict,
    ):
        created = await client.post(
            "/api/v1/invoices",
            json={
                "client_name": "Retainer Client",
                "client_email": "retainer@clientco.com",
                "items": [{"title": "Monthly retainer", "rate": "1000"}],
            },
            headers=agency_headers,
        )
        invoice_id = created.json()["id"]
        start = date.today() + timedelta(days=30)

        response = await client.post(
            "/api/v1/agency/recurring",
            json={"source_invoice_id": invoice_id, "frequency": "monthly", "start_date": start.isoformat()},
            headers=agency_headers,
        )

        assert response.status_code == 201
        assert response.json()["next_invoice_date"] == start.isoformat()

        source = (await db_session.execute(select(Invoice).where(Invoice.invoice_number == created.json()["invoice_number"]))).scalar_one()
        assert source.is_recurring is True

    @pytest.mark.asyncio
    async def test_end_before_start(self, client: AsyncClient, agency_headers: dict):
        created = await client.post(
            "/api/v1/invoices",
            json={
                "client_name": "Retainer Client",
                "client_email": "retainer@clientco.com",
                "items": [{"title": "Monthly retainer", "rate": "1000"}],
            },
            headers=agency_headers,
        )

        response = await client.post(
            "/api/v1/agency/recurring",
            json={
                "source_invoice_id": created.json()["id"],
                "frequency": "weekly",
                "start_date": "2026-11-01",
                "end_date": "2026-10-01",
            },
            headers=agency_headers,
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_cannot_schedule_other_users_invoice(
        self,
        client: AsyncClient,
        agency_headers: dict,
        test_invoice: Invoice,
    ):
        response = await client.post(
            "/api/v1/agency/recurring",
            json={
                "source_invoice_id": str(test_invoice.id),
                "frequency": "monthly",
                "start_date": "2026-11-01",
            },
            headers=agency_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Source invoice not found"


# ===========================================
# API KEYS
# ===========================================

class TestApiKeys:
    """Test API key creation and X-API-Key authentication."""

    @pytest.mark.asyncio
    async def test_create_returns_key_once(self, client: AsyncClient, agency_headers: dict):
        created = await client.post(
            "/api/v1/agency/api-keys",
            json={"name": "Zapier"},
            headers=agency_headers,
        )

        assert created.status_code == 201
        data = created.json()
        assert data["key"].startswith(data["key_prefix"])

        listing = await client.get("/api/v1/agency/api-keys", headers=agency_headers)
        assert len(listing.json()) == 1
        assert "key" not in listing.json()[0]

    @pytest.mark.asyncio
    async def test_key_authenticates_requests(self, client: AsyncClient, agency_headers: dict):
        created = await client.post(
            "/api/v1/agency/api-keys",
            json={"name": "Zapier"},
            headers=agency_headers,
        )
        key = created.json()["key"]

        response = await client.get("/api/v1/invoices", headers={"X-API-Key": key})

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_revoked_key_rejected(self, client: AsyncClient, agency_headers: dict):
        created = await client.post(
            "/api/v1/agency/api-keys",
            json={"name": "Zapier"},
            headers=agency_headers,
        )
        data = created.json()

        revoked = await client.delete(f"/api/v1/agency/api-keys/{data['id']}", headers=agency_headers)
        assert revoked.json()["is_active"] is False

        response = await client.get("/api/v1/invoices", headers={"X-API-Key": data["key"]})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_key_rejected(self, client: AsyncClient):
        response = await client.get("/api/v1/invoices", headers={"X-API-Key": "if_live_nope"})

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "UNAUTHORIZED"
